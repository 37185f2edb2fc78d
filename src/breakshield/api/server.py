"""FastAPI server for BreakShield."""
from typing import List, Optional
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from ..database.store import BlockMode
from ..exceptions import ConfigurationError
from ..selection import Selection
from ..services.lifecycle import Decision, LifecycleService
from ..services.shield import ShieldProvider, ShieldTarget
from ..utils.helpers import format_countdown, selection_summary

# Global instances (will be set by main app)
lifecycle_service: Optional[LifecycleService] = None
shield_provider: Optional[ShieldProvider] = None
engine_service = None

app = FastAPI(
    title="BreakShield API",
    description="Local control surface for BreakShield",
    version="1.0.0"
)

# Enable CORS for browser extension
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Pydantic models
class ProtectionSetup(BaseModel):
    applications: List[str] = []
    categories: List[str] = []
    web_domains: List[str] = []
    mode: BlockMode = BlockMode.INSTANT


def _require_service() -> LifecycleService:
    if not lifecycle_service:
        raise HTTPException(status_code=503, detail="Lifecycle service not available")
    return lifecycle_service


def _decision_payload(decision: Decision) -> dict:
    return {
        "phase": decision.phase.value,
        "remaining": decision.remaining,
        "countdown": format_countdown(decision.remaining),
        "transition": decision.transition,
    }


# Health check
@app.get("/")
def root():
    """Health check endpoint."""
    return {
        "status": "online",
        "app": "BreakShield API",
        "version": "1.0.0"
    }


@app.get("/status")
def get_status():
    """Current protection status."""
    service = _require_service()
    config = service.store.load_config()
    payload = _decision_payload(service.update_phase())
    payload.update({
        "enabled": config.enabled,
        "mode": config.mode.value,
        "summary": selection_summary(config.selection),
        "shield_active": engine_service.active if engine_service else None,
    })
    return payload


@app.post("/protection")
def setup_protection(request: ProtectionSetup):
    """Save a selection, enable protection and arm it."""
    service = _require_service()
    selection = Selection.of(
        applications=request.applications,
        categories=request.categories,
        web_domains=request.web_domains,
    )
    try:
        decision = service.setup(selection, request.mode)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"status": "success", **_decision_payload(decision)}


@app.post("/protection/restart")
def restart_protection():
    """Go another round with the saved configuration."""
    service = _require_service()
    if not service.store.load_config().is_active:
        raise HTTPException(status_code=409, detail="Protection is not enabled")
    return {"status": "success", **_decision_payload(service.arm())}


@app.delete("/protection")
def disable_protection():
    """Disable protection and clear every shield."""
    service = _require_service()
    return {"status": "success", **_decision_payload(service.disarm())}


@app.get("/shield/{target}")
def get_shield(target: ShieldTarget):
    """Shield content for a blocked target about to be shown."""
    if not shield_provider:
        raise HTTPException(status_code=503, detail="Shield provider not available")
    return shield_provider.configuration(target).to_dict()


@app.get("/website-activity/check-blocked/{domain}")
def check_website_blocked(domain: str):
    """Check if a website is blocked."""
    if engine_service and engine_service.is_website_blocked(domain):
        shield = shield_provider.configuration(ShieldTarget.WEB_DOMAIN) if shield_provider else None
        return {
            "blocked": True,
            "message": shield.subtitle if shield else "This website is blocked during your break",
            "shield": shield.to_dict() if shield else None,
        }
    return {"blocked": False}


@app.get("/website-activity/check-category/{category}")
def check_category_blocked(category: str):
    """Check if an app or website category is blocked."""
    return {"blocked": bool(engine_service and engine_service.is_category_blocked(category))}


def set_services(service: LifecycleService, provider: ShieldProvider, engine=None):
    """Set global service instances."""
    global lifecycle_service, shield_provider, engine_service
    lifecycle_service = service
    shield_provider = provider
    engine_service = engine


def start(host: str = None, port: int = None):
    """Start the API server."""
    import uvicorn
    from ..config import API_HOST, API_PORT
    uvicorn.run(app, host=host or API_HOST, port=port or API_PORT, log_level="info")
