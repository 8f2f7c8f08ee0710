"""CORS configuration for the waitlist API."""

from typing import Iterable, List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware


ALLOW_METHODS: List[str] = ["GET", "OPTIONS", "PATCH", "DELETE", "POST", "PUT"]

ALLOW_HEADERS: List[str] = [
    "X-CSRF-Token",
    "X-Requested-With",
    "Accept",
    "Accept-Version",
    "Content-Length",
    "Content-MD5",
    "Content-Type",
    "Date",
    "X-Api-Version",
]


def apply_cors(app: FastAPI, origins: Optional[Iterable[str]] = None) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(origins or ["*"]),
        allow_credentials=True,
        allow_methods=ALLOW_METHODS,
        allow_headers=ALLOW_HEADERS,
    )


__all__ = ["apply_cors", "ALLOW_METHODS", "ALLOW_HEADERS"]
