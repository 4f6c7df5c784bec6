import uuid

from taskflow.core import rate_limit


def test_token_bucket_limits_bursts():
    limiter = rate_limit.TokenBucketLimiter()
    allowed = [limiter.allow("client:/api/v1/boards", rps=0.1, burst=2)[0] for _ in range(3)]
    assert allowed == [True, True, False]
    assert limiter.allow("other:/api/v1/boards", rps=0.1, burst=2)[0] is True


def test_rate_limit_path_groups():
    assert rate_limit._path_group("/api/v1/automations/3/logs") == "/api/v1/automations"
    assert rate_limit._path_group("/docs") == "/docs"
    assert rate_limit._path_group("/") == "/"


def test_policy_defaults_follow_env(monkeypatch):
    monkeypatch.delenv("RATE_LIMIT_ENABLED", raising=False)
    monkeypatch.setenv("TASKFLOW_ENV", "prod")
    monkeypatch.setenv("RATE_LIMIT_RPS", "not-a-number")
    policy = rate_limit.RateLimitPolicy.from_env()
    assert policy.enabled is True
    assert policy.rps == 5.0
    assert policy.burst == 20


def test_api_returns_429_when_bucket_is_empty(client, monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_ENABLED", "true")
    monkeypatch.setenv("RATE_LIMIT_RPS", "0.1")
    monkeypatch.setenv("RATE_LIMIT_BURST", "2")
    headers = {"Authorization": f"Bearer {uuid.uuid4().hex}"}

    codes = [client.get("/api/v1/boards", headers=headers).status_code for _ in range(3)]

    assert codes == [200, 200, 429]
    response = client.get("/api/v1/boards", headers=headers)
    assert response.status_code == 429
    assert int(response.headers["Retry-After"]) >= 1
    # other groups have their own bucket
    assert client.get("/api/v1/push/subscriptions", headers={**headers, "X-User-Name": "rl"}).status_code == 200
