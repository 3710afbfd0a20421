"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime  # noqa: TC003
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import BaseModel, Field

from calorie_bot.services.billing_settings import SettingKey

if TYPE_CHECKING:
    from calorie_bot.containers import AppContainer
    from calorie_bot.domain.promos import Promo

router = APIRouter(prefix="/admin", tags=["admin"])


class PromoCreateRequest(BaseModel):
    """Body for creating a promo code."""

    analyses_count: int = Field(gt=0)
    code: str | None = None
    max_uses: int | None = None
    expires_at: datetime | None = None


class SettingUpdateRequest(BaseModel):
    """Body for updating one billing setting."""

    key: SettingKey
    value: int


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/stats", dependencies=[Depends(require_admin)])
async def bot_stats(request: Request) -> dict[str, object]:
    """Return headline bot statistics."""
    container: AppContainer = request.app.state.container
    return asdict(container.admin_service.get_stats())


@router.get("/users/top", dependencies=[Depends(require_admin)])
async def top_users(request: Request, limit: int = 10) -> dict[str, object]:
    """Return users with the most analyses."""
    container: AppContainer = request.app.state.container
    return {"users": container.admin_service.list_top_users(limit)}


@router.get("/payments", dependencies=[Depends(require_admin)])
async def recent_payments(request: Request, limit: int = 10) -> dict[str, object]:
    """Return the latest payments."""
    container: AppContainer = request.app.state.container
    return {"payments": container.admin_service.list_recent_payments(limit)}


@router.get("/promos", dependencies=[Depends(require_admin)])
async def list_promos(request: Request) -> dict[str, object]:
    """Return all promo codes."""
    container: AppContainer = request.app.state.container
    return {
        "promos": [
            _serialize_promo(promo) for promo in container.promo_service.list_promos()
        ]
    }


@router.post(
    "/promos",
    dependencies=[Depends(require_admin)],
    status_code=status.HTTP_201_CREATED,
)
async def create_promo(body: PromoCreateRequest, request: Request) -> dict[str, object]:
    """Create a promo code."""
    container: AppContainer = request.app.state.container
    result = container.promo_service.create_promo(
        body.analyses_count,
        code=body.code,
        max_uses=body.max_uses,
        expires_at=body.expires_at,
    )
    if not result.success or result.promo is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=result.reason)
    return _serialize_promo(result.promo)


@router.post("/promos/{code}/deactivate", dependencies=[Depends(require_admin)])
async def deactivate_promo(code: str, request: Request) -> dict[str, str]:
    """Stop a promo code from being redeemed."""
    container: AppContainer = request.app.state.container
    if not container.promo_service.deactivate_promo(code):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return {"status": "ok"}


@router.delete("/promos/{code}", dependencies=[Depends(require_admin)])
async def delete_promo(code: str, request: Request) -> dict[str, str]:
    """Delete a promo code that nobody has redeemed."""
    container: AppContainer = request.app.state.container
    if not container.promo_service.delete_promo(code):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Promo not found or already redeemed",
        )
    return {"status": "ok"}


@router.get("/settings", dependencies=[Depends(require_admin)])
async def get_settings(request: Request) -> dict[str, int]:
    """Return billing settings keyed by setting name."""
    container: AppContainer = request.app.state.container
    return container.settings_service.as_dict()


@router.put("/settings", dependencies=[Depends(require_admin)])
async def update_setting(
    body: SettingUpdateRequest, request: Request
) -> dict[str, int]:
    """Update one billing setting."""
    container: AppContainer = request.app.state.container
    try:
        container.settings_service.update(body.key, body.value)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return container.settings_service.as_dict()


def _serialize_promo(promo: Promo) -> dict[str, object]:
    return {
        "id": str(promo.id),
        "code": promo.code,
        "analyses_count": promo.analyses_count,
        "max_uses": promo.max_uses,
        "used_count": promo.used_count,
        "expires_at": promo.expires_at.isoformat() if promo.expires_at else None,
        "is_active": promo.is_active,
        "created_at": promo.created_at.isoformat() if promo.created_at else None,
    }
