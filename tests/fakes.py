# tests/fakes.py — v1
"""Test doubles and sample data shared by unit and integration tests."""

from __future__ import annotations

from typing import Any, Callable

from codeauditor.analyzer.base_backend import BaseAnalysisBackend
from codeauditor.analyzer.models import BackendReply
from codeauditor.core.models import Batch, WorkItem


class FakeBackend(BaseAnalysisBackend):
    """Backend that answers from a script.

    ``script`` is either a list of replies consumed in order (the last one
    repeats) or a callable ``(message, payload) -> BackendReply``. Every call
    is recorded in ``calls`` as ``(message, context_type, payload)``.
    """

    def __init__(
        self,
        script: list[BackendReply | Exception] | Callable[[str, dict[str, Any]], BackendReply],
    ) -> None:
        self._script = script
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    async def chat(
        self,
        message,
        history=None,
        session_context=None,
        log_context=None,
        context_type="codebase_scan",
        payload=None,
    ) -> BackendReply:
        payload = payload or {}
        self.calls.append((message, context_type, payload))
        if callable(self._script):
            reply = self._script(message, payload)
        else:
            index = min(len(self.calls) - 1, len(self._script) - 1)
            reply = self._script[index]
        if isinstance(reply, Exception):
            raise reply
        return reply


class RecordingSleep:
    """Awaitable stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def ok(message: str) -> BackendReply:
    return BackendReply(success=True, message=message)


def err(error: str, code: str | None = None) -> BackendReply:
    return BackendReply(success=False, error=error, code=code)


def make_item(item_id: str, size_bytes: int = 100, payload: Any = None) -> WorkItem:
    return WorkItem(id=item_id, size_bytes=size_bytes, payload=payload)


def make_batch(*ids: str, size_bytes: int = 100) -> Batch:
    return Batch(index=0, items=[make_item(i, size_bytes) for i in ids])


# === Sample sources ===

USER_CONTROLLER = """<?php

namespace App\\Http\\Controllers;

use Illuminate\\Support\\Facades\\DB;

class UserController extends Controller
{
    public function show($id)
    {
        $user = DB::select("SELECT * FROM users WHERE id = " . $id);
        return view('users.show', ['user' => $user]);
    }
}
"""

ORDER_MODEL = """<?php

namespace App\\Models;

class Order extends Model
{
    protected $fillable = ['user_id', 'total'];

    public function items()
    {
        return $this->hasMany(OrderItem::class);
    }
}
"""
