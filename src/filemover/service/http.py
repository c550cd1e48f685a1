"""
Optional status endpoints for the worker.

    GET /health          - liveness, no tenant required
    GET /api/schedules   - the calling tenant's schedules (tenant resolved
                           from X-Tenant-ID / X-FirmCode / subdomain)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from aiohttp import web

from filemover.tenancy.middleware import get_tenant, setup_tenancy

if TYPE_CHECKING:
    from filemover.service.worker import FileMoverWorker

WORKER_KEY = web.AppKey("worker", object)


async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


async def schedules(request: web.Request) -> web.Response:
    worker = request.app[WORKER_KEY]
    tenant = get_tenant(request)
    status = worker.scheduler.status()
    own = [s for s in status["schedules"] if s["tenant_id"] == tenant.tenant_id]
    return web.json_response(
        {
            "tenant_id": tenant.tenant_id,
            "client_code": tenant.client_code,
            "schedules": own,
        }
    )


def create_app(worker: FileMoverWorker) -> web.Application:
    app = web.Application()
    app[WORKER_KEY] = worker
    setup_tenancy(app, worker.resolver)
    app.router.add_get("/health", health)
    app.router.add_get("/api/schedules", schedules)
    return app
