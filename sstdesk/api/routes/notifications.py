# sstdesk/api/routes/notifications.py
from __future__ import annotations

from fastapi import APIRouter, Query, status

from sstdesk.api.deps import AdminDep, CurrentDep, RepoDep
from sstdesk.api.presenters import notification_out
from sstdesk.core.errors import Forbidden, NotFound, ValidationFailed
from sstdesk.db.models import Notification
from sstdesk.schemas.notifications import MarkReadIn, NotificationCreateIn
from sstdesk.services.access import Identity
from sstdesk.services.notifications import log_activity, notify

router = APIRouter()


async def _own_notification(repo, notification_id: str, current: Identity) -> Notification:
    n = await repo.get_notification(notification_id)
    if n is None:
        raise NotFound("Notificación no encontrada")
    if n.user_id != current.id:
        raise Forbidden("No tienes permiso para esta notificación")
    return n


@router.get("")
async def list_notifications(
    repo: RepoDep,
    current: CurrentDep,
    limit: int = Query(50, ge=1, le=200),
    unread_only: bool = Query(False, alias="unreadOnly"),
):
    items = await repo.list_notifications(current.id, unread_only=unread_only, limit=limit)
    total = await repo.count_notifications(current.id)
    return {
        "notifications": [notification_out(n) for n in items],
        "unreadCount": await repo.count_notifications(current.id, unread_only=True),
        "totalCount": total,
        "hasMore": total > limit,
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_notification(payload: NotificationCreateIn, repo: RepoDep, current: AdminDep):
    if await repo.get_user(payload.user_id) is None:
        raise NotFound("Usuario no encontrado")
    n = notify(
        repo,
        user_id=payload.user_id,
        title=payload.title,
        message=payload.message,
        type=payload.type,
        data=payload.data or {},
    )
    await repo.commit()
    await repo.refresh(n)
    log_activity(
        repo,
        user_id=current.id,
        action="created_notification",
        entity="notification",
        entity_id=n.id,
        details={"targetUserId": payload.user_id, "type": payload.type},
    )
    await repo.commit()
    return {"message": "Notificación creada exitosamente", "notification": notification_out(n)}


@router.delete("")
async def delete_notifications(
    repo: RepoDep,
    current: CurrentDep,
    delete_all: bool = Query(False, alias="all"),
):
    """Без ?all=true видаляються тільки прочитані."""
    count = await repo.delete_notifications(current.id, read_only=not delete_all)
    await repo.commit()
    return {"message": f"{count} notificaciones eliminadas", "deletedCount": count}


@router.api_route("/mark-read", methods=["PATCH", "POST"])
async def mark_read(payload: MarkReadIn, repo: RepoDep, current: CurrentDep):
    if payload.mark_all_read:
        count = await repo.mark_notifications_read(current.id)
        await repo.commit()
        return {
            "success": True,
            "message": f"{count} notificaciones marcadas como leídas",
            "updatedCount": count,
        }

    if payload.notification_id:
        n = await _own_notification(repo, payload.notification_id, current)
        n.read = True
        await repo.commit()
        return {
            "success": True,
            "message": "Notificación marcada como leída",
            "notification": notification_out(n),
        }

    if payload.notification_ids:
        ids = list(dict.fromkeys(payload.notification_ids))
        if await repo.count_owned_notifications(current.id, ids) != len(ids):
            raise Forbidden("Algunas notificaciones no te pertenecen o no existen")
        count = await repo.mark_notifications_read(current.id, ids)
        await repo.commit()
        return {
            "success": True,
            "message": f"{count} notificaciones marcadas como leídas",
            "updatedCount": count,
        }

    raise ValidationFailed("Debes proporcionar notificationId, notificationIds o markAllRead")


@router.get("/{notification_id}")
async def get_notification(notification_id: str, repo: RepoDep, current: CurrentDep):
    n = await _own_notification(repo, notification_id, current)
    # відкрита нотифікація вважається прочитаною
    if not n.read:
        n.read = True
        await repo.commit()
    return {"notification": notification_out(n)}


@router.delete("/{notification_id}")
async def delete_notification(notification_id: str, repo: RepoDep, current: CurrentDep):
    n = await _own_notification(repo, notification_id, current)
    await repo.delete(n)
    await repo.commit()
    return {"message": "Notificación eliminada exitosamente"}
