# services/audit_log.py
from __future__ import annotations

import inspect
import logging
import uuid
from contextvars import ContextVar, Token
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from functools import wraps
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Sequence

from page_builder.db.database import DataBase
from page_builder.db.schemas.audit_log import AuditLogCreate, AuditLogRead

logger = logging.getLogger("page_builder.audit")

# Shared across every AuditLogService so one bound actor covers all services of a request.
_actor_ctx: ContextVar[Optional[uuid.UUID]] = ContextVar("audit_actor", default=None)


class AuditLogService:
    """
    Stores every editorial mutation in the ``audit_log`` table.

    Payloads are normalised into JSON-friendly dictionaries, enriched with
    call-site metadata and persisted through :class:`page_builder.db.database.DataBase`.
    """

    def __init__(self, database: DataBase) -> None:
        self._database = database
        self._module_name = Path(__file__).name

    async def log(
        self,
        *,
        action: str,
        actor_id: uuid.UUID | None = None,
        payload: Any | None = None,
        include_context: bool = True,
    ) -> AuditLogRead:
        """
        Persist an audit entry.

        :param action: short machine-readable label (``services.placement.create_placement``, ``services.reorder.reorder``…)
        :param actor_id: editor that initiated the action; defaults to the bound actor
        :param payload: arbitrary structure with details (will be serialised)
        :param include_context: whether to attach caller metadata automatically
        """
        payload_map = self._prepare_payload(payload)
        if include_context:
            payload_map.setdefault("_meta", {}).update(self._call_context())

        actor_id = actor_id if actor_id is not None else self.current_actor()

        entry = await self._database.create_audit_log(
            AuditLogCreate(action=action, actor_id=actor_id, payload=payload_map)
        )
        logger.info(
            "AUDIT action=%s actor=%s entry=%s",
            action,
            str(actor_id) if actor_id else "-",
            entry.id,
        )
        return entry

    async def list_entries(
        self,
        *,
        limit: int = 100,
        offset: int = 0,
        actor_id: uuid.UUID | None = None,
        action: str | None = None,
    ) -> tuple[list[AuditLogRead], int]:
        """Return recent audit entries."""
        return await self._database.list_audit_logs(
            limit=limit,
            offset=offset,
            actor_id=actor_id,
            action=action,
        )

    # --------------
    # Actor context
    # --------------
    def bind_actor(self, actor_id: Optional[uuid.UUID]) -> Token:
        return _actor_ctx.set(actor_id)

    def unbind_actor(self, token: Token) -> None:
        _actor_ctx.reset(token)

    def current_actor(self) -> Optional[uuid.UUID]:
        return _actor_ctx.get()

    def _prepare_payload(self, payload: Any | None) -> dict[str, Any]:
        if payload is None:
            return {}
        serialized = self.serialize(payload)
        if isinstance(serialized, dict):
            return dict(serialized)
        return {"value": serialized}

    def serialize(self, value: Any) -> Any:
        if value is None or isinstance(value, (bool, int, float)):
            return value
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, str):
            return value
        if isinstance(value, uuid.UUID):
            return str(value)
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if hasattr(value, "model_dump"):
            return self.serialize(value.model_dump(mode="json"))
        if is_dataclass(value) and not isinstance(value, type):
            return {k: self.serialize(v) for k, v in asdict(value).items()}
        if isinstance(value, Mapping):
            return {str(k): self.serialize(v) for k, v in value.items()}
        if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
            return [self.serialize(v) for v in value]
        return str(value)

    def _call_context(self) -> dict[str, Any]:
        for frame in inspect.stack()[2:]:
            path = Path(frame.filename)
            if path.name != self._module_name:
                return {
                    "module": path.stem,
                    "location": f"{path.name}:{frame.lineno}",
                    "function": frame.function,
                }
        return {}


async def _record_call(audit: AuditLogService, action: str, payload: dict[str, Any]) -> None:
    try:
        await audit.log(action=action, payload=payload)
    except Exception:
        logger.exception("Failed to record audit entry for %s", action)


def _wrap_async_method(fn, action: str):
    if getattr(fn, "__audit_wrapped__", False):
        return fn

    @wraps(fn)
    async def wrapper(self, *args, **kwargs):
        audit: Optional[AuditLogService] = getattr(self, "_audit", None)
        if audit is None:
            return await fn(self, *args, **kwargs)

        payload: dict[str, Any] = {
            "args": [audit.serialize(arg) for arg in args],
            "kwargs": {k: audit.serialize(v) for k, v in kwargs.items()},
        }
        try:
            result = await fn(self, *args, **kwargs)
        except Exception as exc:
            payload["error"] = repr(exc)
            await _record_call(audit, f"{action}.error", payload)
            raise
        payload["result"] = audit.serialize(result)
        await _record_call(audit, action, payload)
        return result

    wrapper.__audit_wrapped__ = True  # type: ignore[attr-defined]
    return wrapper


def instrument_service_class(
    cls,
    *,
    prefix: str | None = None,
    exclude: Iterable[str] | None = None,
) -> None:
    """
    Wrap the public async methods of a service class so every call leaves
    an audit entry (``<prefix>.<method>``, or ``<prefix>.<method>.error``
    when it raises). The instance's ``_audit`` service does the writing;
    instances without one are not audited.
    """
    action_prefix = prefix or cls.__name__
    excluded = set(exclude or [])

    for name, attr in list(cls.__dict__.items()):
        if name.startswith("_") or name in excluded:
            continue
        if inspect.iscoroutinefunction(attr):
            setattr(cls, name, _wrap_async_method(attr, f"{action_prefix}.{name}"))


__all__ = [
    "AuditLogService",
    "instrument_service_class",
]
