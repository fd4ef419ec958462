"""
Portal FastAPI application: portal generation (admin), fractals and collections (per user),
and the Zapier SMS/voice webhook.

Caller identity comes from the signed portal_session cookie or an Authorization: Bearer header
carrying the same value. Typed ProcedureErrors map to 400/401/403/404/500 with {"code", "detail"};
anything else is caught by the global exception handler and returns 500.
"""
import logging
import re
import time
import uuid
from typing import Any, Dict, List, Literal, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from portal.catalog import get_catalog
from portal.commands import TARGET_CATEGORIES, parse_portal_command
from portal.config import CATEGORIES, get_admin_email, get_admin_phone, get_config_dir, get_zapier_secret
from portal.errors import PortalError, ProcedureError
from portal.models import GeneratedPortalRecord, PortalConfig, utc_now_iso
from portal.multi import get_generator
from portal.notify import notify_owner
from portal.session import SessionUser, verify_session_value
from storage import database as db

app = FastAPI(
    title="Helix Portal Orchestrator",
    description="Portal generation, fractal gallery and Zapier command webhook.",
    version="0.1.0",
)

_log = logging.getLogger(__name__)

SESSION_COOKIE = "portal_session"

# Append-only history of generation attempts started through the server (process lifetime).
_records: List[GeneratedPortalRecord] = []


def get_records() -> List[GeneratedPortalRecord]:
    return list(_records)


def reset_records() -> None:
    _records.clear()


@app.exception_handler(ProcedureError)
def _procedure_error_handler(request: Request, exc: ProcedureError):
    return JSONResponse(status_code=exc.status_code, content={"code": exc.code, "detail": exc.message})


@app.exception_handler(Exception)
def _global_exception_handler(request: Request, exc: Exception):
    """Catch any unhandled exception and return 500 so the server never crashes."""
    _log.exception("Portal route error: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"code": "INTERNAL_SERVER_ERROR", "detail": "Internal server error", "error": str(exc)},
    )


# ----- identity -----

def _session_value(request: Request) -> str:
    value = request.cookies.get(SESSION_COOKIE) or ""
    if not value:
        header = request.headers.get("Authorization") or ""
        if header.startswith("Bearer "):
            value = header[7:].strip()
    return value


def current_user(request: Request) -> SessionUser:
    user = verify_session_value(_session_value(request))
    if user is None:
        raise ProcedureError("UNAUTHORIZED", "Please login")
    return user


def admin_user(user: SessionUser = Depends(current_user)) -> SessionUser:
    if (user.email or "").strip().lower() != get_admin_email():
        raise ProcedureError("FORBIDDEN", "Only administrators can generate portals")
    return user


# ----- request bodies -----

class GeneratePortalRequest(BaseModel):
    portalType: Literal["core", "agents", "consciousness", "system", "all"]
    portalName: str


class FractalCreate(BaseModel):
    imageUrl: str
    harmony: str
    zoom: str
    resilience: str
    prana: str
    drishti: str
    klesha: str
    title: Optional[str] = None
    description: Optional[str] = None


class FractalUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    isPublic: Optional[bool] = None


class FavoriteToggle(BaseModel):
    isFavorite: bool


class CollectionCreate(BaseModel):
    name: str
    description: Optional[str] = None
    isPublic: bool = False


class PortalCommand(BaseModel):
    command: str
    source: Literal["sms", "voice"]
    phoneNumber: Optional[str] = None
    timestamp: Optional[str] = None
    zapierSecret: str


# ----- health -----

@app.get("/ready")
def ready():
    """Readiness for process managers. Returns 200 when the app is up."""
    return PlainTextResponse("ok", status_code=200)


@app.get("/api/portal/status")
def status():
    """Catalog size and in-flight generations. Never raises."""
    try:
        total = len(get_catalog())
    except (OSError, ValueError) as e:
        _log.warning("Catalog unavailable: %s", e)
        total = 0
    return {
        "service": "portal",
        "config_dir": str(get_config_dir()),
        "totalPortals": total,
        "inFlight": get_generator().in_flight(),
        "database": db.get_db() is not None,
    }


@app.get("/api/auth/me")
def auth_me(user: SessionUser = Depends(current_user)):
    return {"id": user.id, "email": user.email}


@app.post("/api/auth/logout")
def auth_logout():
    response = JSONResponse(content={"success": True})
    response.delete_cookie(SESSION_COOKIE)
    return response


# ----- portals -----

def _slugify(name: str) -> str:
    return re.sub(r"\s+", "-", (name or "").strip().lower())


def resolve_portal(portal_type: str, portal_name: str) -> Optional[PortalConfig]:
    """Find a portal by id or by slugified display name; "all" searches every category."""
    catalog = get_catalog()
    slug = _slugify(portal_name)
    categories = CATEGORIES if portal_type == "all" else (portal_type,)
    for category in categories:
        for portal in catalog.get_portals_by_type(category):
            if portal.id in (portal_name, slug) or _slugify(portal.name) == slug:
                return portal
    return None


async def _run_generation(record: GeneratedPortalRecord) -> None:
    def mark_deploying():
        record.status = "deploying"

    result = await get_generator().generate_portal(record.portalId, on_deploy=mark_deploying)
    record.apply_result(result)
    _log.info("Portal %s finished: %s", record.portalId, record.status)


async def _run_batch(label: str, category: Optional[str] = None) -> None:
    generator = get_generator()
    try:
        if category is None:
            results = await generator.generate_all_portals()
        else:
            results = await generator.generate_category(category)
    except (PortalError, OSError, ValueError) as e:
        _log.error("%s deployment failed: %s", label, e)
        await notify_owner(f"{label} Portal Deployment Failed", str(e))
        return
    ok = sum(1 for r in results if r.success)
    await notify_owner(
        f"{label} Portal Deployment Complete",
        f"Successfully deployed {ok}/{len(results)} portals",
    )


@app.post("/api/portals/generate")
async def portals_generate(
    body: GeneratePortalRequest,
    background_tasks: BackgroundTasks,
    user: SessionUser = Depends(admin_user),
):
    _log.info("Generating %s portal %r requested by %s", body.portalType, body.portalName, user.email)
    portal = resolve_portal(body.portalType, body.portalName)
    if portal is None:
        raise ProcedureError("NOT_FOUND", f'Portal "{body.portalName}" not found')
    record = GeneratedPortalRecord(
        portalId=portal.id,
        status="generating",
        message=f"Portal generation initiated for {portal.name}",
        deploymentUrl=get_generator().deployment_url(portal.id),
    )
    _records.append(record)
    background_tasks.add_task(_run_generation, record)
    return record.model_dump()


@app.post("/api/portals/generate-all")
async def portals_generate_all(background_tasks: BackgroundTasks, user: SessionUser = Depends(admin_user)):
    total = len(get_catalog())
    _log.info("Generating all %d portals, requested by %s", total, user.email)
    background_tasks.add_task(_run_batch, "All")
    return {
        "success": True,
        "message": f"Generating all {total} portals. This may take several minutes.",
        "totalPortals": total,
        "status": "generating",
        "timestamp": utc_now_iso(),
    }


@app.get("/api/portals/records")
def portals_records(user: SessionUser = Depends(admin_user)):
    return [r.model_dump() for r in _records]


@app.get("/api/portals/{portal_id}/status")
def portals_status(portal_id: str, user: SessionUser = Depends(current_user)):
    return get_generator().get_portal_status(portal_id).model_dump()


# ----- fractals -----

def _new_id(prefix: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _owned_fractal(fractal_id: str, user: SessionUser, action: str) -> Dict[str, Any]:
    fractal = db.get_fractal(fractal_id)
    if not fractal:
        raise ProcedureError("NOT_FOUND", "Fractal not found")
    if fractal.get("userId") != user.id:
        raise ProcedureError("FORBIDDEN", f"You do not have permission to {action} this fractal")
    return fractal


@app.post("/api/fractals")
def fractals_create(body: FractalCreate, user: SessionUser = Depends(current_user)):
    fractal_id = _new_id("fractal")
    try:
        db.create_fractal(
            id=fractal_id,
            user_id=user.id,
            image_url=body.imageUrl,
            harmony=body.harmony,
            zoom=body.zoom,
            resilience=body.resilience,
            prana=body.prana,
            drishti=body.drishti,
            klesha=body.klesha,
            title=body.title,
            description=body.description,
            is_favorite=False,
            is_public=False,
        )
    except SQLAlchemyError as e:
        _log.error("Failed to create fractal: %s", e)
        raise ProcedureError("INTERNAL_SERVER_ERROR", "Failed to create fractal")
    return {"id": fractal_id, "success": True}


@app.get("/api/fractals")
def fractals_list(limit: int = 50, user: SessionUser = Depends(current_user)):
    return db.get_user_fractals(user.id, limit=limit)


@app.get("/api/fractals/{fractal_id}")
def fractals_get(fractal_id: str, user: SessionUser = Depends(current_user)):
    fractal = db.get_fractal(fractal_id)
    if not fractal:
        raise ProcedureError("NOT_FOUND", "Fractal not found")
    if fractal.get("userId") != user.id and not fractal.get("isPublic"):
        raise ProcedureError("FORBIDDEN", "You do not have access to this fractal")
    return fractal


@app.patch("/api/fractals/{fractal_id}")
def fractals_update(fractal_id: str, body: FractalUpdate, user: SessionUser = Depends(current_user)):
    _owned_fractal(fractal_id, user, "update")
    try:
        db.update_fractal(fractal_id, title=body.title, description=body.description, is_public=body.isPublic)
    except SQLAlchemyError as e:
        _log.error("Failed to update fractal: %s", e)
        raise ProcedureError("INTERNAL_SERVER_ERROR", "Failed to update fractal")
    return {"success": True}


@app.post("/api/fractals/{fractal_id}/favorite")
def fractals_toggle_favorite(fractal_id: str, body: FavoriteToggle, user: SessionUser = Depends(current_user)):
    _owned_fractal(fractal_id, user, "modify")
    try:
        db.toggle_fractal_favorite(fractal_id, body.isFavorite, user.id)
    except SQLAlchemyError as e:
        _log.error("Failed to toggle favorite: %s", e)
        raise ProcedureError("INTERNAL_SERVER_ERROR", "Failed to toggle favorite")
    return {"success": True}


@app.delete("/api/fractals/{fractal_id}")
def fractals_delete(fractal_id: str, user: SessionUser = Depends(current_user)):
    _owned_fractal(fractal_id, user, "delete")
    try:
        db.delete_fractal(fractal_id)
    except SQLAlchemyError as e:
        _log.error("Failed to delete fractal: %s", e)
        raise ProcedureError("INTERNAL_SERVER_ERROR", "Failed to delete fractal")
    return {"success": True}


# ----- collections / stats -----

@app.post("/api/collections")
def collections_create(body: CollectionCreate, user: SessionUser = Depends(current_user)):
    collection_id = _new_id("collection")
    try:
        db.create_collection(
            id=collection_id,
            user_id=user.id,
            name=body.name,
            description=body.description,
            is_public=body.isPublic,
        )
    except SQLAlchemyError as e:
        _log.error("Failed to create collection: %s", e)
        raise ProcedureError("INTERNAL_SERVER_ERROR", "Failed to create collection")
    return {"id": collection_id, "success": True}


@app.get("/api/collections")
def collections_list(user: SessionUser = Depends(current_user)):
    return db.get_user_collections(user.id)


@app.get("/api/user/stats")
def user_stats(user: SessionUser = Depends(current_user)):
    return db.get_user_stats(user.id) or {
        "userId": user.id,
        "totalFractalsGenerated": 0,
        "totalFavorites": 0,
        "totalCollections": 0,
        "lastGeneratedAt": None,
    }


# ----- Zapier webhook -----

def _check_secret(secret: str) -> None:
    if secret != get_zapier_secret():
        raise ProcedureError("UNAUTHORIZED", "Invalid webhook secret")


async def _handle_command(body: PortalCommand, background_tasks: BackgroundTasks) -> Dict[str, Any]:
    label = "SMS" if body.source == "sms" else "Voice"
    parsed = parse_portal_command(body.command)
    await notify_owner(
        f"{label} Command Received",
        f"Source: {body.source}\nCommand: {body.command}\nAction: {parsed.action}\nTarget: {parsed.target or 'N/A'}",
    )

    if parsed.action == "status":
        generator = get_generator()
        in_flight = generator.in_flight()
        return {
            "success": True,
            "message": f"{len(in_flight)} portal(s) generating, {len(_records)} generation(s) recorded",
            "action": "status",
            "inFlight": in_flight,
        }

    if parsed.action != "deploy":
        return {"success": False, "message": "Unknown command format", "action": "unknown"}

    if parsed.target == "single" and parsed.portal_id:
        result = await get_generator().generate_portal(parsed.portal_id)
        return {
            "success": result.success,
            "message": (
                f"Portal {parsed.portal_id} deployed successfully"
                if result.success
                else f"Portal deployment failed: {result.error}"
            ),
            "action": "deploy",
            "target": parsed.target,
            "portalId": parsed.portal_id,
            "deploymentUrl": result.deploymentUrl,
            "logs": result.logs,
        }

    if parsed.target == "all":
        total = len(get_catalog())
        background_tasks.add_task(_run_batch, f"{label} All")
        return {
            "success": True,
            "message": f"Deploying all {total} portals. You'll receive a notification when complete.",
            "action": "deploy",
            "target": parsed.target,
            "portalCount": total,
        }

    category = TARGET_CATEGORIES.get(parsed.target or "")
    if category:
        count = len(get_catalog().get_portals_by_type(category))
        background_tasks.add_task(_run_batch, f"{label} {parsed.target}", category)
        return {
            "success": True,
            "message": f"Deploying {count} {parsed.target} portals. You'll receive a notification when complete.",
            "action": "deploy",
            "target": parsed.target,
            "portalCount": count,
        }

    return {"success": False, "message": "Unknown deployment target", "action": "deploy"}


@app.post("/api/zapier/sms")
async def zapier_sms(body: PortalCommand, background_tasks: BackgroundTasks):
    _check_secret(body.zapierSecret)
    if body.phoneNumber and not body.phoneNumber.startswith(get_admin_phone()):
        await notify_owner(
            "Unauthorized SMS Command Attempt",
            f"Phone: {body.phoneNumber}\nCommand: {body.command}",
        )
        raise ProcedureError("FORBIDDEN", "Unauthorized phone number")
    return await _handle_command(body, background_tasks)


@app.post("/api/zapier/voice")
async def zapier_voice(body: PortalCommand, background_tasks: BackgroundTasks):
    _check_secret(body.zapierSecret)
    return await _handle_command(body, background_tasks)


@app.get("/api/zapier/test")
def zapier_test(secret: str = ""):
    if secret != get_zapier_secret():
        raise ProcedureError("UNAUTHORIZED", "Invalid secret")
    return {"success": True, "message": "Zapier webhook connection verified", "timestamp": utc_now_iso()}
