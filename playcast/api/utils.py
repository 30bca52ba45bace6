import inspect
import pkgutil
from importlib import import_module
from os import environ
from typing import Any, Generic, Literal, TypeVar
from uuid import uuid4

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse
from loguru import logger
from pydantic import BaseModel, Field

from playcast.utils.app_errors import AppErrorCode, HttpStatusCode


def format_error(ex: BaseException) -> str:
    from traceback import TracebackException

    return "".join(TracebackException.from_exception(ex).format())


class ApiResponse(BaseModel):
    version: str | None = Field(default_factory=lambda: environ.get("BUILD_COMMIT", "dev"))


class ApiSuccess(ApiResponse):
    success: Literal[True] = True
    results: Any = "OK"


T = TypeVar("T")


class ApiOut(ApiSuccess, Generic[T]):
    """Success envelope with typed `results`."""

    results: T  # type: ignore[valid-type]


class ApiFailure(ApiResponse):
    success: Literal[False] = False
    errcode: str = AppErrorCode.E_INTERNAL_ERROR.value
    erresid: str = Field(default_factory=lambda: uuid4().hex[:10])
    errmesg: str = "We are sorry, an error occurred."


def api_failure(
    errcode: str | None = None,
    errmesg: Exception | str | None = None,
    *,
    trace: Any = None,
) -> ApiFailure:
    """Build an ApiFailure and log it with the call site."""
    if not errcode:
        errcode = str(ApiFailure.model_fields["errcode"].default)

    if isinstance(errmesg, Exception):
        errmesg = format_error(errmesg)

    if not errmesg:
        errmesg = str(ApiFailure.model_fields["errmesg"].default)

    failure = ApiFailure(errcode=str(errcode), errmesg=errmesg)

    caller_frame = inspect.stack()[1]
    module = inspect.getmodule(caller_frame.frame)
    module_name = (
        module.__name__ if module and getattr(module, "__name__", None) else caller_frame.filename
    )
    caller_info = f"{module_name}:{caller_frame.function}:{caller_frame.lineno}"

    logger.warning(
        f"{failure.errcode} {failure.erresid}\n{failure.errmesg} caller={caller_info} trace={trace}"
    )

    return failure


def make_response(results: ApiResponse, *, status_code: int | None = None) -> ORJSONResponse:
    if status_code is None:
        if isinstance(results, ApiFailure):
            status_code = (
                HttpStatusCode.INTERNAL_SERVER_ERROR
                if results.errcode == AppErrorCode.E_INTERNAL_ERROR.value
                else HttpStatusCode.BAD_REQUEST
            )
        else:
            status_code = HttpStatusCode.OK

    return ORJSONResponse(status_code=int(status_code), content=results.model_dump(mode="json"))


def load_routes(app: FastAPI, prefix: str) -> None:
    """Include the `router` of every module in playcast.api.routers."""
    from playcast.api import routers

    for module_info in pkgutil.iter_modules(routers.__path__):
        name = f"{routers.__name__}.{module_info.name}"
        module = import_module(name)
        if hasattr(module, "router"):
            app.include_router(module.router, prefix=prefix)
            logger.info(f"Added routes in {name}")

    for route in app.routes:
        methods = getattr(route, "methods", None)
        if methods:
            logger.debug(f"Loaded route: {','.join(sorted(methods)):<12} {route.path}")
