"""
Owner notifications. Always logged; also POSTed to OWNER_NOTIFY_URL when configured.
Never raises: a failed delivery is logged and reported as False.
"""
import httpx
from loguru import logger

from portal.config import get_owner_notify_url


async def notify_owner(title: str, content: str) -> bool:
    logger.info("[notify] {}: {}", title, content.replace("\n", " | "))
    url = get_owner_notify_url()
    if not url:
        return False
    try:
        async with httpx.AsyncClient() as client:
            r = await client.post(url, json={"title": title, "content": content}, timeout=10.0)
        if r.status_code >= 400:
            logger.warning("Owner notification returned {}: {}", r.status_code, r.text[:200])
            return False
        return True
    except httpx.HTTPError as e:
        logger.warning("Owner notification failed: {}", e)
        return False
