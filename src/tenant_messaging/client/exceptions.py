from __future__ import annotations


class ClientError(Exception):
    """Base error raised by the messaging client."""


class HistoryFetchError(ClientError):
    def __init__(self, detail: str, status_code: int | None = None) -> None:
        self.detail = detail
        self.status_code = status_code
        super().__init__(f"{status_code or 'network'}: {detail}")
