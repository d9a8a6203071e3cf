"""Base Service for OctoPrint API areas."""

import typing

import pydantic

from octoprint_bridge import exceptions
from octoprint_bridge.executor import ApiResponse, RequestExecutor


class BaseService:
    """Base class for domain-specific services."""

    prefix = "/api"

    def __init__(self, executor: RequestExecutor):
        """Initialize the service."""
        self._executor = executor

    async def _get(self, path: str, model: typing.Any) -> typing.Any:
        """GET ``path`` and validate the 200 body with ``model``.

        Raises:
            exceptions.PrinterApiError: On any other accepted status (e.g. 409).
        """
        response = await self._executor.execute("GET", f"{self.prefix}/{path}")
        _expect(response, 200, path)
        if isinstance(model, pydantic.TypeAdapter):
            return model.validate_python(response.body)
        return model.model_validate(response.body or {})

    async def _command(self, path: str, body: dict[str, typing.Any]) -> ApiResponse:
        """POST a command to ``path``; OctoPrint acknowledges commands with 204.

        Raises:
            exceptions.PrinterApiError: On any other accepted status (e.g. 409 Conflict).
        """
        response = await self._executor.execute("POST", f"{self.prefix}/{path}", body)
        _expect(response, 204, path)
        return response


def _expect(response: ApiResponse, status: int, path: str) -> None:
    if response.status != status:
        raise exceptions.PrinterApiError(
            message=f"Unexpected response from {path}",
            status_code=response.status,
            response_body=response.body,
        )
