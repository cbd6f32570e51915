"""Async HTTP client for the diffgate server."""

from __future__ import annotations

from typing import Any

import httpx

from diffgate.utils.logger import client_logger as logger

DEFAULT_BASE_URL = "http://localhost:3001"


class DiffGateClientError(Exception):
    """Non-2xx response (or transport failure, ``status_code`` 0) from the server."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


class DiffGateClient:
    """Mirrors every server endpoint; responses are returned as decoded JSON."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

    async def __aenter__(self) -> DiffGateClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self, method: str, path: str, json: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.warning("Request failed", method=method, path=path, error=str(e))
            raise DiffGateClientError(0, str(e) or type(e).__name__) from e

        if response.is_success:
            try:
                return response.json()
            except ValueError as e:
                logger.warning(
                    "Response is not JSON",
                    method=method,
                    path=path,
                    status_code=response.status_code,
                )
                raise DiffGateClientError(
                    response.status_code, "Invalid JSON in server response"
                ) from e

        try:
            message = response.json().get("error") or response.reason_phrase
        except ValueError:
            message = response.text or response.reason_phrase
        logger.debug(
            "Server returned error",
            method=method,
            path=path,
            status_code=response.status_code,
            error=message,
        )
        raise DiffGateClientError(response.status_code, message)

    async def health(self) -> dict[str, Any]:
        return await self._request("GET", "/health")

    async def repo(self) -> str:
        return (await self._request("GET", "/repo"))["path"]

    async def latest_diff(self) -> dict[str, Any]:
        return await self._request("GET", "/diffs/latest")

    async def stage(self, file_path: str) -> None:
        await self._request("POST", "/git/stage", {"filePath": file_path})

    async def unstage(self, file_path: str) -> None:
        await self._request("POST", "/git/unstage", {"filePath": file_path})

    async def commit(self, message: str, *, strict_mode: bool = False) -> None:
        await self._request(
            "POST", "/git/commit", {"message": message, "strictMode": strict_mode}
        )

    async def push(self, *, strict_mode: bool = False) -> None:
        await self._request("POST", "/git/push", {"strictMode": strict_mode})

    async def stash(self) -> None:
        await self._request("POST", "/git/stash")

    async def quiz_results(self) -> list[dict[str, Any]]:
        return (await self._request("GET", "/quiz/results"))["results"]

    async def record_quiz_result(self, result: dict[str, Any]) -> dict[str, Any]:
        return (await self._request("POST", "/quiz/results", {"result": result}))[
            "result"
        ]

    async def generate_quiz(
        self,
        *,
        count: int | None = None,
        rules: str | None = None,
        include_explanations: bool | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if count is not None:
            body["count"] = count
        quiz_config = {
            k: v
            for k, v in {
                "rules": rules,
                "includeExplanations": include_explanations,
            }.items()
            if v is not None
        }
        if quiz_config:
            body["quizConfig"] = quiz_config
        return await self._request("POST", "/ai/quiz", body)

    async def commit_message(
        self,
        *,
        style: str | None = None,
        include_body: bool | None = None,
        follow_previous_style: bool | None = None,
        custom_rules: str | None = None,
    ) -> dict[str, Any]:
        body = {
            k: v
            for k, v in {
                "style": style,
                "includeBody": include_body,
                "followPreviousStyle": follow_previous_style,
                "customRules": custom_rules,
            }.items()
            if v is not None
        }
        return await self._request("POST", "/ai/commit-message", body)

    async def review(
        self, question: str, *, file_path: str | None = None
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"question": question}
        if file_path is not None:
            body["filePath"] = file_path
        return await self._request("POST", "/ai/review", body)

    async def code_review(
        self,
        *,
        enable_bug_hunter: bool = True,
        enable_security: bool = True,
        enable_quality: bool = True,
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/ai/code-review",
            {
                "reviewConfig": {
                    "enableBugHunter": enable_bug_hunter,
                    "enableSecurity": enable_security,
                    "enableQuality": enable_quality,
                }
            },
        )

    async def get_config(self) -> dict[str, Any]:
        return (await self._request("GET", "/config"))["config"]

    async def update_config(self, updates: dict[str, Any]) -> dict[str, Any]:
        return (await self._request("PUT", "/config", {"config": updates}))["config"]
