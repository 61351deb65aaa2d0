"""
Tests that slow account work does not hold up other requests.
"""

import time

import anyio
import pytest
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_notifier
from app.core.csrf import CSRF_COOKIE_NAME, generate_csrf_token
from app.main import app

from conftest import VALID_PASSWORD, RecordingNotifier


class SlowNotifier(RecordingNotifier):
    """Notifier that stalls like an unresponsive mail server."""

    def __init__(self, delay: float):
        super().__init__()
        self.delay = delay

    def send_verification_email(self, email: str, token: str) -> bool:
        time.sleep(self.delay)
        return super().send_verification_email(email, token)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.mark.anyio
async def test_slow_email_does_not_block_other_requests(raw_client):
    app.dependency_overrides[get_notifier] = lambda: SlowNotifier(delay=1.0)
    csrf_token = generate_csrf_token()
    results = {}

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver",
        cookies={CSRF_COOKIE_NAME: csrf_token},
        headers={"X-XSRF-Token": csrf_token},
    ) as http:

        async def register():
            results["register"] = await http.post(
                "/api/auth/register",
                json={
                    "email": "slow@example.com",
                    "password": VALID_PASSWORD,
                    "confirmPassword": VALID_PASSWORD,
                },
            )

        async def root():
            # Let registration reach the notifier first
            await anyio.sleep(0.2)
            started = time.perf_counter()
            results["root"] = await http.get("/")
            results["root_elapsed"] = time.perf_counter() - started

        async with anyio.create_task_group() as tg:
            tg.start_soon(register)
            tg.start_soon(root)

    assert results["register"].status_code == 201
    assert results["root"].status_code == 200
    assert results["root_elapsed"] < 0.5
