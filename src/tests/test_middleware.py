from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.testclient import TestClient
from starlette.responses import Response

from opsgate.rate_limiter import (
    ClientIdentifier,
    FixedWindowAlgorithm,
    RateLimitExceededError,
    RateLimitStatus,
    RateLimitDependency,
    RateLimiter,
    RateLimitMiddleware,
    add_rate_limit_headers,
    install_exception_handlers,
    resolve_identifier,
    with_rate_limit,
)
from opsgate.rate_limiter.utils import exceeded_headers, rate_limit_headers


def _request(headers=None, client=("192.0.2.10", 50000)):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


def _limiter(clock, limit=2):
    return RateLimiter(FixedWindowAlgorithm(limit=limit, window=60, clock=clock), name="test")


def test_client_ip_prefers_forwarded_for():
    request = _request({"X-Forwarded-For": "198.51.100.7, 10.0.0.1", "X-Real-IP": "10.0.0.2"})
    assert ClientIdentifier.get_client_ip(request) == "198.51.100.7"


def test_client_ip_header_fallbacks():
    assert ClientIdentifier.get_client_ip(_request({"X-Real-IP": " 10.0.0.2 "})) == "10.0.0.2"
    assert (
        ClientIdentifier.get_client_ip(_request({"CF-Connecting-IP": "203.0.113.9"}))
        == "203.0.113.9"
    )
    assert ClientIdentifier.get_client_ip(_request()) == "192.0.2.10"
    assert ClientIdentifier.get_client_ip(_request(client=None)) == "127.0.0.1"


def test_explicit_token_wins_over_ip():
    request = _request({"X-Forwarded-For": "198.51.100.7"})
    assert resolve_identifier(request, "user-42") == "user-42"
    assert resolve_identifier(request) == "198.51.100.7"


def test_with_rate_limit_guards_handler(clock):
    limiter = _limiter(clock)
    calls = []

    async def login(request):
        calls.append(request.url.path)
        return JSONResponse({"success": True})

    app = FastAPI()
    app.add_route("/login", with_rate_limit(limiter, 2, login), methods=["POST"])
    client = TestClient(app)

    assert client.post("/login").status_code == 200
    assert client.post("/login").status_code == 200

    response = client.post("/login")
    assert response.status_code == 429
    assert response.json() == {
        "success": False,
        "message": "Rate limit exceeded",
        "error": "TOO_MANY_REQUESTS",
        "resetTime": 60000,
    }
    assert response.headers["Retry-After"] == "60"
    assert response.headers["X-RateLimit-Limit"] == "2"
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert response.headers["X-RateLimit-Reset"] == "60"
    assert len(calls) == 2


def test_with_rate_limit_supports_sync_handlers(clock):
    limiter = _limiter(clock, limit=1)

    def ping(request):
        return PlainTextResponse("pong")

    app = FastAPI()
    app.add_route("/ping", with_rate_limit(limiter, None, ping))
    client = TestClient(app)

    assert client.get("/ping").text == "pong"
    assert client.get("/ping").status_code == 429


def test_clients_are_limited_separately(clock):
    limiter = _limiter(clock, limit=1)

    async def handler(request):
        return JSONResponse({"success": True})

    app = FastAPI()
    app.add_route("/", with_rate_limit(limiter, None, handler))
    client = TestClient(app)

    first = {"X-Forwarded-For": "198.51.100.1"}
    second = {"X-Forwarded-For": "198.51.100.2"}
    assert client.get("/", headers=first).status_code == 200
    assert client.get("/", headers=first).status_code == 429
    assert client.get("/", headers=second).status_code == 200


def test_dependency_and_exception_handler(clock):
    limiter = _limiter(clock, limit=5)
    app = FastAPI()
    install_exception_handlers(app)

    @app.get("/projects", dependencies=[Depends(RateLimitDependency(limiter, limit=2))])
    async def projects(request: Request):
        return {"remaining": request.state.rate_limit.remaining}

    client = TestClient(app)
    assert client.get("/projects").json() == {"remaining": 1}
    assert client.get("/projects").json() == {"remaining": 0}

    response = client.get("/projects")
    assert response.status_code == 429
    assert response.json()["error"] == "TOO_MANY_REQUESTS"
    assert response.headers["X-RateLimit-Limit"] == "2"


def test_dependency_with_custom_key(clock):
    limiter = _limiter(clock, limit=1)
    by_user = RateLimitDependency(limiter, key_func=lambda r: r.headers.get("X-User", "anon"))
    app = FastAPI()
    install_exception_handlers(app)

    @app.get("/me", dependencies=[Depends(by_user)])
    async def me():
        return {"success": True}

    client = TestClient(app)
    assert client.get("/me", headers={"X-User": "ada"}).status_code == 200
    assert client.get("/me", headers={"X-User": "ada"}).status_code == 429
    assert client.get("/me", headers={"X-User": "grace"}).status_code == 200


def test_middleware_adds_headers_and_skips_excluded_paths(clock):
    limiter = _limiter(clock, limit=2)
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, limiter=limiter)

    @app.get("/items")
    async def items():
        return {"success": True}

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    client = TestClient(app)
    for _ in range(5):
        assert client.get("/health").status_code == 200

    response = client.get("/items")
    assert response.status_code == 200
    assert response.headers["X-RateLimit-Limit"] == "2"
    assert response.headers["X-RateLimit-Remaining"] == "1"
    assert response.headers["X-RateLimit-Reset"] == "60"

    client.get("/items")
    rejected = client.get("/items")
    assert rejected.status_code == 429
    assert rejected.json()["resetTime"] == 60000


class _BrokenLimiter:
    name = "broken"

    def check(self, identifier, limit=None, cost=1):
        raise RuntimeError("store unavailable")


def _broken_app(fail_open):
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, limiter=_BrokenLimiter(), fail_open=fail_open)

    @app.get("/items")
    async def items():
        return {"success": True}

    return app


def test_middleware_fails_open():
    response = TestClient(_broken_app(fail_open=True)).get("/items")
    assert response.status_code == 200
    assert "X-RateLimit-Limit" not in response.headers


def test_middleware_fails_closed():
    response = TestClient(_broken_app(fail_open=False)).get("/items")
    assert response.status_code == 503
    assert response.json()["error"] == "RATE_LIMITER_ERROR"


def test_add_rate_limit_headers(clock):
    limiter = _limiter(clock, limit=3)
    limiter.check("user-42")

    response = add_rate_limit_headers(Response(), limiter, _request(), token="user-42")
    assert response.headers["X-RateLimit-Limit"] == "3"
    assert response.headers["X-RateLimit-Remaining"] == "2"

    response = add_rate_limit_headers(Response(), limiter, _request(), limit=10)
    assert response.headers["X-RateLimit-Limit"] == "10"
    assert response.headers["X-RateLimit-Remaining"] == "3"


def test_middleware_excludes_whole_path_segments_only(clock):
    limiter = _limiter(clock, limit=1)
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, limiter=limiter)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/health/live")
    async def live():
        return {"status": "ok"}

    @app.get("/healthz-admin")
    async def healthz_admin():
        return {"success": True}

    client = TestClient(app)
    for _ in range(3):
        assert client.get("/health").status_code == 200
        assert client.get("/health/live").status_code == 200

    assert client.get("/healthz-admin").status_code == 200
    assert client.get("/healthz-admin").status_code == 429


def test_reset_headers_round_up():
    headers = rate_limit_headers(RateLimitStatus(limit=3, remaining=1, reset=60.2))
    assert headers["X-RateLimit-Reset"] == "61"

    error = RateLimitExceededError(limit=3, reset_time=60.2, retry_after=0.2)
    assert exceeded_headers(error)["X-RateLimit-Reset"] == "61"
    assert exceeded_headers(error)["Retry-After"] == "1"
