#!/usr/bin/env python3
"""
Example HTTP Client for the Auth Server

Walks through the session flow: signup, login, then access to the
protected resource with each token source (body, bearer header, cookie).

Usage:
    # Terminal 1: Start the server
    JWT_SECRET_KEY=change-me-to-a-long-random-secret-value python -m auth_server

    # Terminal 2: Run this client
    python examples/example_client.py --url http://localhost:3000
"""

import argparse
import asyncio
import logging
import uuid
from typing import Any, Dict, Optional, Tuple

import aiohttp

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("auth_client")


class AuthClient:
    """Small aiohttp client for the auth endpoints"""

    def __init__(self, base_url: str = "http://localhost:3000"):
        """Initialize client"""
        self.base_url = base_url.rstrip("/")
        self.session: Optional[aiohttp.ClientSession] = None
        self.token: Optional[str] = None

    async def __aenter__(self) -> "AuthClient":
        self.session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self.session:
            await self.session.close()
            self.session = None

    async def _call(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        cookies: Optional[Dict[str, str]] = None,
    ) -> Tuple[int, Dict[str, Any]]:
        async with self.session.request(
            method,
            f"{self.base_url}{path}",
            json=payload,
            headers=headers,
            cookies=cookies,
        ) as resp:
            body = await resp.json(content_type=None) if resp.content_length else {}
            logger.info(f"{method} {path} -> {resp.status} {body}")
            return resp.status, body

    async def signup(self, email: str, password: str, name: str) -> Tuple[int, Dict[str, Any]]:
        """Create an account; keeps the returned token"""
        status, body = await self._call(
            "POST", "/api/signup", {"email": email, "password": password, "name": name}
        )
        if status == 200:
            self.token = body["token"]
        return status, body

    async def login(self, email: str, password: str) -> Tuple[int, Dict[str, Any]]:
        """Log in; keeps the returned token"""
        status, body = await self._call(
            "POST", "/api/login", {"email": email, "password": password}
        )
        if status == 200:
            self.token = body["token"]
        return status, body

    async def protected(self, source: str = "body") -> Tuple[int, Dict[str, Any]]:
        """
        Call the protected endpoint

        Args:
            source: Where to put the token: "body", "bearer" or "cookie"
        """
        if source == "bearer":
            return await self._call(
                "GET", "/protected", headers={"Authorization": f"Bearer {self.token}"}
            )
        if source == "cookie":
            return await self._call("GET", "/protected", cookies={"token": self.token})
        return await self._call("POST", "/protected", {"token": self.token})

    async def unprotected(self) -> Tuple[int, Dict[str, Any]]:
        """Call the unprotected endpoint"""
        return await self._call("GET", "/unprotected")


async def main(base_url: str) -> None:
    """Run the demo flow"""
    email = f"demo-{uuid.uuid4().hex[:8]}@example.com"
    password = "correct horse battery"

    async with AuthClient(base_url) as client:
        await client.unprotected()

        logger.info("--- Protected without a token (expect 401) ---")
        await client.protected()

        logger.info("--- Signup ---")
        await client.signup(email, password, "Demo User")

        logger.info("--- Duplicate signup (expect 400) ---")
        await client.signup(email, password, "Demo User")

        logger.info("--- Login with a wrong password (expect 400) ---")
        await client.login(email, "not the password")

        logger.info("--- Login ---")
        await client.login(email, password)

        for source in ("body", "bearer", "cookie"):
            logger.info(f"--- Protected, token in {source} ---")
            await client.protected(source)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Auth server example client")
    parser.add_argument("--url", default="http://localhost:3000", help="Server base URL")
    args = parser.parse_args()

    try:
        asyncio.run(main(args.url))
    except aiohttp.ClientConnectionError as e:
        logger.error(f"Cannot reach {args.url}: {e}")
