"""
Per-service wrappers over the MCP runner, plus the orchestration flows used by the
mcp-integration CLI. Each wrapper turns one domain action into one runner call with a
fixed command name and a JSON payload. No retries; loops over the catalog sleep a fixed
delay between calls to stay under naive rate limits.
"""
import json
import time
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from integrations.mcp import CommandResult, McpRunner
from portal.catalog import PortalCatalog, get_catalog
from portal.models import PortalConfig, utc_now_iso

Sleep = Callable[[float], None]

NOTION_DELAY = 0.5
ZAPIER_DELAY = 0.3
WEBHOOK_EVENTS = ("deployment", "health_check", "ucf_update", "error")

PORTALS_DATABASE_SCHEMA = {
    "title": "Helix 51-Portal Network",
    "properties": {
        "Portal ID": {"type": "title"},
        "Name": {"type": "rich_text"},
        "Domain": {"type": "url"},
        "Type": {"type": "select", "options": ["core", "agents", "consciousness", "system"]},
        "Tier": {"type": "number"},
        "Status": {"type": "select", "options": ["active", "planned", "maintenance", "archived"]},
        "Priority": {"type": "select", "options": ["critical", "high", "medium", "low"]},
        "Description": {"type": "rich_text"},
        "Repository": {"type": "url"},
        "Deployment URL": {"type": "url"},
        "Last Updated": {"type": "date"},
        "UCF Enabled": {"type": "checkbox"},
        "Health Status": {"type": "select", "options": ["healthy", "degraded", "down", "unknown"]},
    },
}


class _Service:
    server = ""

    def __init__(self, runner: Optional[McpRunner] = None, catalog: Optional[PortalCatalog] = None, sleep: Sleep = time.sleep):
        self.runner = runner or McpRunner()
        self._catalog = catalog
        self.sleep = sleep

    @property
    def catalog(self) -> PortalCatalog:
        return self._catalog or get_catalog()

    def _tool(self, *args: Any) -> CommandResult:
        return self.runner.execute(self.server, "tool", list(args))


class NotionIntegration(_Service):
    server = "notion"

    def __init__(self, *args, github_org: str = "helix-collective", **kwargs):
        super().__init__(*args, **kwargs)
        self.github_org = github_org

    def create_portals_database(self) -> CommandResult:
        logger.info("Creating portals database in Notion")
        return self._tool("create-database", json.dumps(PORTALS_DATABASE_SCHEMA))

    def page_data(self, portal: PortalConfig) -> Dict[str, Any]:
        return {
            "Portal ID": portal.id,
            "Name": portal.name,
            "Domain": portal.domain,
            "Type": portal.type,
            "Tier": portal.tier,
            "Status": portal.metadata.get("status") or "planned",
            "Priority": portal.metadata.get("priority") or "medium",
            "Description": portal.description,
            "Repository": f"https://github.com/{self.github_org}/{portal.repository}" if portal.repository else "",
            "Deployment URL": f"https://{portal.domain}" if portal.domain else "",
            "Last Updated": utc_now_iso(),
            "UCF Enabled": bool(portal.ucf.get("enabled", False)),
            "Health Status": "unknown",
        }

    def sync_portal(self, portal: PortalConfig) -> CommandResult:
        logger.info("Syncing {} to Notion", portal.name)
        return self._tool("create-page", json.dumps(self.page_data(portal)))

    def sync_all_portals(self) -> List[Dict[str, Any]]:
        results = []
        for category in self.catalog.categories():
            logger.info("Syncing {} portals to Notion", category)
            for portal in self.catalog.portals(category):
                result = self.sync_portal(portal)
                results.append({"portal": portal.id, "success": result.success})
                self.sleep(NOTION_DELAY)
        logger.info("Synced {} portals to Notion", len(results))
        return results

    def update_portal_status(self, portal_id: str, status: str, health_status: str = "unknown") -> CommandResult:
        logger.info("Updating {} status: {} ({})", portal_id, status, health_status)
        update = {"Status": status, "Health Status": health_status, "Last Updated": utc_now_iso()}
        return self._tool("update-page", portal_id, json.dumps(update))


class ZapierIntegration(_Service):
    server = "zapier"

    def create_portal_webhook(self, portal_id: str, event_type: str, webhook_url: str) -> CommandResult:
        logger.info("Creating Zapier webhook for {} ({})", portal_id, event_type)
        config = {
            "name": f"Helix Portal: {portal_id} - {event_type}",
            "event": event_type,
            "url": webhook_url,
            "portal": portal_id,
        }
        return self._tool("create-webhook", json.dumps(config))

    def send_portal_event(self, portal_id: str, event_type: str, data: Any) -> CommandResult:
        logger.info("Sending {} event for {}", event_type, portal_id)
        event = {
            "portal_id": portal_id,
            "event_type": event_type,
            "timestamp": utc_now_iso(),
            "data": data,
        }
        return self._tool("trigger-event", json.dumps(event, default=str))

    def setup_all_webhooks(self) -> List[Dict[str, Any]]:
        results = []
        for portal in self.catalog.all_portals():
            for event_type in WEBHOOK_EVENTS:
                url = f"https://hooks.zapier.com/hooks/catch/{portal.id}/{event_type}"
                result = self.create_portal_webhook(portal.id, event_type, url)
                results.append({"portal": portal.id, "event": event_type, "success": result.success})
                self.sleep(ZAPIER_DELAY)
        logger.info("Created {} webhooks", len(results))
        return results


class VercelIntegration(_Service):
    server = "vercel"

    def deploy_portal(self, portal_id: str, project_path: str) -> CommandResult:
        logger.info("Deploying {} to Vercel", portal_id)
        return self._tool("deploy", json.dumps({"name": portal_id, "path": str(project_path), "production": True}))

    def get_deployment_status(self, portal_id: str) -> CommandResult:
        return self._tool("get-deployment", portal_id)


class SentryIntegration(_Service):
    server = "sentry"

    def __init__(self, *args, team: str = "helix-collective", **kwargs):
        super().__init__(*args, **kwargs)
        self.team = team

    def create_project(self, portal_id: str, portal_name: str = "") -> CommandResult:
        logger.info("Creating Sentry project for {}", portal_id)
        config = {"name": portal_id, "slug": portal_id, "platform": "react", "team": self.team}
        return self._tool("create-project", json.dumps(config))

    def get_error_stats(self, portal_id: str) -> CommandResult:
        return self._tool("get-issues", portal_id)


def health_from(error_count: int, deployment_ok: bool) -> str:
    if error_count > 500 or not deployment_ok:
        return "down"
    if error_count > 100:
        return "degraded"
    return "healthy"


class HelixOrchestrator:
    """Notion + Zapier + Vercel + Sentry flows over one shared runner and catalog."""

    def __init__(self, runner: Optional[McpRunner] = None, catalog: Optional[PortalCatalog] = None, sleep: Sleep = time.sleep):
        runner = runner or McpRunner()
        self.notion = NotionIntegration(runner, catalog, sleep)
        self.zapier = ZapierIntegration(runner, catalog, sleep)
        self.vercel = VercelIntegration(runner, catalog, sleep)
        self.sentry = SentryIntegration(runner, catalog, sleep)

    def initialize(self) -> Dict[str, Any]:
        """Create the Notion database, sync every portal, set up every webhook."""
        logger.info("Initializing orchestration integrations")
        database = self.notion.create_portals_database()
        synced = self.notion.sync_all_portals()
        webhooks = self.zapier.setup_all_webhooks()
        return {"database": database.to_dict(), "synced": synced, "webhooks": webhooks}

    def deploy_portal(self, portal_id: str, project_path: str) -> CommandResult:
        logger.info("Deploying {}", portal_id)
        self.notion.update_portal_status(portal_id, "deploying", "unknown")
        deployment = self.vercel.deploy_portal(portal_id, project_path)
        self.sentry.create_project(portal_id, portal_id)
        self.zapier.send_portal_event(portal_id, "deployment", deployment.to_dict())
        if deployment.success:
            self.notion.update_portal_status(portal_id, "active", "healthy")
        else:
            self.notion.update_portal_status(portal_id, "maintenance", "down")
        return deployment

    def monitor_portal_health(self, portal_id: str) -> Dict[str, Any]:
        logger.info("Monitoring {} health", portal_id)
        deployment = self.vercel.get_deployment_status(portal_id)
        errors = self.sentry.get_error_stats(portal_id)
        try:
            count = int(errors.get("count", 0) or 0)
        except (TypeError, ValueError):
            count = 0
        health = health_from(count, deployment.success)
        self.notion.update_portal_status(portal_id, "active", health)
        self.zapier.send_portal_event(portal_id, "health_check", {
            "status": health,
            "errors": count,
            "deployment": deployment.to_dict(),
        })
        return {"healthStatus": health, "errors": count, "deployment": deployment.to_dict()}
