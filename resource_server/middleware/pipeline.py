# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Ordered request-processing stages and the executor that runs them.

A ``Stage`` has a forward hook (``before``) that either returns a response to
short-circuit the request or ``None`` to continue, and a backward hook
(``after``) that may decorate the response on the way out. The ``Pipeline``
runs the forward hooks in order, then the handler, then the backward hooks of
every stage it entered in reverse order.

When anything raises, the outermost entered stage that ``handles_errors``
converts the exception into a response at the point of failure, and
unwinding continues from there. Stages between the failure and the error
stage therefore still decorate the error response. Without such a stage the
exception propagates to the caller.

Two pipelines are in play per request. ``PipelineMiddleware`` runs the
global stages around the whole application; route handlers run their own
validation stages through ``run_route``. Both share one ``RequestContext``
stored on ``request.state``.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Sequence

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

UNAUTHENTICATED = "unauthenticated"


@dataclass
class RequestContext:
    """Request-scoped state shared by every stage and the handler."""

    request: Request
    owner_id: Optional[str] = None
    validated_body: Any = None
    validated_query: Any = None
    validated_path: Any = None

    @property
    def actor(self) -> str:
        """Caller identity for audit events."""
        return self.owner_id or UNAUTHENTICATED

    @property
    def path(self) -> str:
        return self.request.url.path

    @property
    def method(self) -> str:
        return self.request.method


def get_request_context(request: Request) -> RequestContext:
    """Return the context attached to this request, creating it on first use."""
    ctx = getattr(request.state, "context", None)
    if ctx is None:
        ctx = RequestContext(request=request)
        request.state.context = ctx
    return ctx


class Stage:
    """One step of a pipeline. Subclasses override the hooks they need."""

    handles_errors = False

    async def before(self, ctx: RequestContext) -> Optional[Response]:
        return None

    async def after(self, ctx: RequestContext, response: Response) -> Response:
        return response

    async def contain(self, ctx: RequestContext, exc: Exception) -> Response:
        """Convert an exception into a response. Only for error stages."""
        raise NotImplementedError


Handler = Callable[[RequestContext], Awaitable[Response]]


class Pipeline:
    """Runs an ordered list of stages around a handler."""

    def __init__(self, stages: Sequence[Stage]):
        self.stages = tuple(stages)

    async def run(self, ctx: RequestContext, handler: Handler) -> Response:
        """
        Execute the pipeline for one request.

        Args:
            ctx: The request context
            handler: Terminal handler, called only if no stage short-circuits

        Returns:
            The response after every entered stage has seen it
        """
        entered: list[Stage] = []
        response: Optional[Response] = None

        try:
            for stage in self.stages:
                response = await stage.before(ctx)
                entered.append(stage)
                if response is not None:
                    break
            if response is None:
                response = await handler(ctx)
        except Exception as exc:
            response = await self._contain(ctx, entered, exc)

        for index in range(len(entered) - 1, -1, -1):
            try:
                response = await entered[index].after(ctx, response)
            except Exception as exc:
                response = await self._contain(ctx, entered[:index], exc)

        return response

    @staticmethod
    async def _contain(
        ctx: RequestContext, candidates: Sequence[Stage], exc: Exception
    ) -> Response:
        for stage in candidates:
            if stage.handles_errors:
                return await stage.contain(ctx, exc)
        raise exc


class PipelineMiddleware(BaseHTTPMiddleware):
    """Runs the global stages around the rest of the application."""

    def __init__(self, app, stages: Sequence[Stage]):
        """
        Initialize the pipeline middleware.

        Args:
            app: The ASGI application
            stages: Global stages, outermost first
        """
        super().__init__(app)
        self.pipeline = Pipeline(stages)

    async def dispatch(self, request: Request, call_next):
        ctx = get_request_context(request)

        async def forward(ctx: RequestContext) -> Response:
            return await call_next(ctx.request)

        return await self.pipeline.run(ctx, forward)


async def run_route(request: Request, stages: Sequence[Stage], handler: Handler) -> Response:
    """Run route-level stages (typically validation) around a route handler."""
    ctx = get_request_context(request)
    # Routed request carries path params and the body stream
    ctx.request = request
    return await Pipeline(stages).run(ctx, handler)
