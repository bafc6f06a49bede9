"""
Tests for the note-analysis API.
"""

import pytest
from fastapi.testclient import TestClient

from conftest import HASHTAGS, TITLES, make_settings
from note_analysis.api.app import create_app
from note_analysis.exceptions import PromptValidationError
from note_analysis.services import PromptBuilder


def analyze(client, sample_article, path="/api/generate-hashtags", **kwargs):
    return client.post(path, json={"articleText": sample_article}, **kwargs)


def test_root(client):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "note-analysis API"
    assert data["endpoints"]["analyze_article"] == "/api/analyze-article"


def test_health(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["providerConfigured"] is True
    assert data["model"] == "claude-sonnet-4-20250514"


def test_generate_hashtags(client, sample_article, fake_client):
    """A first request calls the provider and reports its cost."""
    response = analyze(client, sample_article)

    assert response.status_code == 200
    data = response.json()
    assert data["hashtags"] == HASHTAGS

    metadata = data["_metadata"]
    assert metadata["cached"] is False
    assert metadata["cacheStatus"] == "miss"
    assert metadata["tokensUsed"] == 1500
    assert metadata["actualCost"] == pytest.approx(0.0105)
    assert metadata["promptId"] == "hashtag-generation-v1-ja"
    assert metadata["rateLimitRemaining"] == 4
    assert len(fake_client.messages.calls) == 1


def test_analyze_article(client, sample_article):
    response = analyze(client, sample_article, "/api/analyze-article")

    assert response.status_code == 200
    data = response.json()
    assert len(data["hashtags"]) == 20
    assert data["eyeCatch"]["imagePrompt"].startswith("A calm home office")
    assert len(data["eyeCatch"]["compositionIdeas"]) == 3
    assert data["_metadata"]["promptId"] == "article-analysis-v1-ja"


def test_analyze_article_full(client, sample_article):
    """Full analysis output is repaired into the response shape."""
    response = analyze(client, sample_article, "/api/analyze-article-full")

    assert response.status_code == 200
    data = response.json()
    assert len(data["suggestedTitles"]) == 5
    assert len(data["eyeCatchImage"]["compositionIdeas"]) == 3
    assert len(data["eyeCatchImage"]["colorPalette"]) == 4
    assert data["viralityScore"]["titleAppeal"] == 100
    assert data["viralityScore"]["openingHook"] == 0
    assert data["insights"]["oneLiner"] == "小さな習慣が在宅勤務を変える"


def test_duplicate_request_is_replayed(client, sample_article, fake_client):
    """An identical request from the same client never reaches the provider."""
    first = analyze(client, sample_article)
    second = analyze(client, sample_article)

    assert second.status_code == 200
    assert second.json()["hashtags"] == first.json()["hashtags"]
    metadata = second.json()["_metadata"]
    assert metadata["cached"] is True
    assert metadata["deduplication"] is True
    assert metadata["cacheStatus"] == "dedup"
    assert metadata["actualCost"] == 0
    assert len(fake_client.messages.calls) == 1


def test_other_client_is_served_from_cache(client, sample_article, fake_client):
    """The response cache is shared between clients."""
    analyze(client, sample_article, headers={"X-Forwarded-For": "198.51.100.1"})
    response = analyze(client, sample_article, headers={"X-Forwarded-For": "198.51.100.2, 10.0.0.1"})

    assert response.status_code == 200
    metadata = response.json()["_metadata"]
    assert metadata["cacheStatus"] == "hit"
    assert metadata["deduplication"] is False
    assert metadata["costSaved"] == pytest.approx(0.02)
    assert len(fake_client.messages.calls) == 1


def test_whitespace_variant_hits_cache(client, sample_article, fake_client):
    analyze(client, sample_article, headers={"X-Real-IP": "198.51.100.1"})
    response = analyze(client, f"  {sample_article}  \r\n", headers={"X-Real-IP": "198.51.100.2"})

    assert response.json()["_metadata"]["cacheStatus"] == "hit"
    assert len(fake_client.messages.calls) == 1


def test_rate_limit(client, sample_article):
    """The sixth request in a window is rejected with Retry-After."""
    for _ in range(5):
        assert analyze(client, sample_article).status_code == 200

    response = analyze(client, sample_article)

    assert response.status_code == 429
    assert "Too many requests" in response.json()["error"]
    retry_after = int(response.headers["Retry-After"])
    assert 0 < retry_after <= 60


def test_rate_limit_is_per_client(client, sample_article):
    for _ in range(5):
        analyze(client, sample_article, headers={"X-Forwarded-For": "198.51.100.1"})

    response = analyze(client, sample_article, headers={"X-Forwarded-For": "198.51.100.2"})
    assert response.status_code == 200


def test_article_too_long(client):
    response = client.post("/api/analyze-article", json={"articleText": "あ" * 50_000})

    assert response.status_code == 400
    assert "too long" in response.json()["error"]


def test_article_too_short(client):
    response = client.post("/api/generate-hashtags", json={"articleText": "短い"})

    assert response.status_code == 400
    assert "too short" in response.json()["error"]


def test_missing_article_text(client):
    response = client.post("/api/generate-hashtags", json={})

    assert response.status_code == 400
    assert "error" in response.json()


def test_malformed_body(client):
    response = client.post(
        "/api/generate-hashtags",
        content="not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert "articleText" in response.json()["error"]


def test_invalid_input_does_not_consume_quota(client, sample_article):
    for _ in range(10):
        client.post("/api/generate-hashtags", json={"articleText": "短い"})

    assert analyze(client, sample_article).status_code == 200


def test_parse_failure_does_not_leak_model_output(client, sample_article, fake_client):
    """Unusable model output becomes a generic 500."""
    fake_client.messages.text = "SECRET_RAW_OUTPUT with no tags"

    response = analyze(client, sample_article)

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to generate hashtags"}
    assert "SECRET_RAW_OUTPUT" not in response.text


def test_failed_request_is_not_cached(client, sample_article, fake_client):
    fake_client.messages.text = "no tags"
    assert analyze(client, sample_article).status_code == 500

    fake_client.messages.text = None
    response = analyze(client, sample_article)

    assert response.status_code == 200
    assert response.json()["_metadata"]["cacheStatus"] == "miss"
    assert len(fake_client.messages.calls) == 2


def test_missing_api_key():
    """Without a key the app starts but analysis fails with 500."""
    app = create_app(make_settings(anthropic_api_key=None))
    with TestClient(app) as client:
        assert client.get("/health").json()["providerConfigured"] is False

        response = client.post("/api/generate-hashtags", json={"articleText": "あ" * 200})

    assert response.status_code == 500
    assert "error" in response.json()


def test_access_token_required(fake_client, sample_article):
    app = create_app(make_settings(api_access_token="s3cret"), completion_client=fake_client)
    with TestClient(app) as client:
        assert analyze(client, sample_article).status_code == 401
        assert analyze(client, sample_article, headers={"Authorization": "Bearer wrong"}).status_code == 401
        assert client.get("/api/usage-stats").status_code == 401
        assert client.get("/health").status_code == 200

        response = analyze(client, sample_article, headers={"Authorization": "Bearer s3cret"})
        assert response.status_code == 200

        response = client.get("/api/prompts", headers={"X-Access-Token": "s3cret"})
        assert response.status_code == 200


def test_usage_stats(client, sample_article):
    analyze(client, sample_article)
    analyze(client, sample_article)

    response = client.get("/api/usage-stats", params={"period": "today"})

    assert response.status_code == 200
    data = response.json()
    assert data["period"] == "today"
    assert data["totalRequests"] == 2
    assert data["cacheHits"] == 1
    assert data["deduplicatedRequests"] == 1
    assert data["totalTokens"] == 1500
    assert data["cache"]["misses"] == 1
    assert data["cache"]["hitRate"] == "0.0%"
    assert data["byEndpoint"]["/api/generate-hashtags"]["requests"] == 2


def test_usage_stats_invalid_period(client):
    response = client.get("/api/usage-stats", params={"period": "yesterday"})

    assert response.status_code == 400
    assert "Invalid period" in response.json()["error"]


def test_usage_stats_invalid_format(client):
    response = client.get("/api/usage-stats", params={"format": "csv"})
    assert response.status_code == 400


def test_usage_stats_markdown(client, sample_article):
    analyze(client, sample_article)

    response = client.get("/api/usage-stats", params={"period": "all", "format": "markdown"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/markdown")
    assert "usage-report-all.md" in response.headers["content-disposition"]
    assert response.text.startswith("# API Usage Report")
    assert "/api/generate-hashtags" in response.text


def test_usage_summary(client, sample_article):
    analyze(client, sample_article)

    response = client.post("/api/usage-stats/summary")

    assert response.status_code == 200
    data = response.json()
    assert set(data) == {"today", "thisWeek", "thisMonth", "allTime", "cache"}
    assert data["allTime"]["totalRequests"] == 1


def test_invalidate_cache(client, sample_article, fake_client):
    analyze(client, sample_article, headers={"X-Forwarded-For": "198.51.100.1"})

    response = client.delete("/api/cache", params={"endpoint": "/api/generate-hashtags"})

    assert response.status_code == 200
    assert response.json()["deleted"] == 1

    analyze(client, sample_article, headers={"X-Forwarded-For": "198.51.100.2"})
    assert len(fake_client.messages.calls) == 2


def test_invalidate_cache_unknown_endpoint(client):
    response = client.delete("/api/cache", params={"endpoint": "/api/unknown"})
    assert response.status_code == 400


def test_prompts(client):
    response = client.get("/api/prompts")

    assert response.status_code == 200
    data = response.json()
    assert data["registry"]["defaults"]["hashtag"] == "hashtag-generation-v1-ja"
    assert data["config"]["experimentsEnabled"] is False
    assert any(t["id"] == "analysis-full-v1-ja" for t in data["templates"])


def test_article_with_template_syntax(client, sample_article, fake_client):
    """Braces in the article reach the model untouched."""
    article = f"{sample_article} Vueでは {{{{ message }}}} のように書きます。"

    response = analyze(client, article)

    assert response.status_code == 200
    assert len(fake_client.messages.calls) == 1
    assert "{{ message }}" in fake_client.messages.calls[0]["messages"][0]["content"]


def test_prompt_errors_are_not_exposed(client, sample_article, fake_client, monkeypatch):
    def broken_build(self, template, variables):
        raise PromptValidationError("Missing variables in template: {{internalName}}")

    monkeypatch.setattr(PromptBuilder, "build", broken_build)

    response = analyze(client, sample_article)

    assert response.status_code == 500
    assert "internalName" not in response.text
    assert "misconfigured" in response.json()["error"]
    assert fake_client.messages.calls == []


def test_generate_eyecatch(client, sample_article, fake_client):
    response = analyze(client, sample_article, "/api/generate-eyecatch")

    assert response.status_code == 200
    data = response.json()
    assert data["eyeCatch"]["imagePrompt"].startswith("A minimalist desk")
    assert len(data["eyeCatch"]["compositionIdeas"]) == 3
    assert "colorPalette" not in data["eyeCatch"]
    assert data["_metadata"]["promptId"] == "eyecatch-generation-v1-ja"
    assert 400 <= fake_client.messages.calls[0]["max_tokens"] <= 800


def test_generate_titles(client, sample_article, fake_client):
    response = analyze(client, sample_article, "/api/generate-titles")

    assert response.status_code == 200
    data = response.json()
    assert data["titles"] == TITLES
    assert data["_metadata"]["promptId"] == "titles-generation-v1-ja"
    assert "5個の魅力的なタイトル案" in fake_client.messages.calls[0]["messages"][0]["content"]


def test_new_endpoints_have_their_own_cache(client, sample_article, fake_client):
    analyze(client, sample_article, "/api/generate-eyecatch", headers={"X-Real-IP": "198.51.100.1"})
    response = analyze(client, sample_article, "/api/generate-titles", headers={"X-Real-IP": "198.51.100.2"})

    assert response.json()["_metadata"]["cacheStatus"] == "miss"
    assert client.delete("/api/cache", params={"endpoint": "/api/generate-titles"}).json()["deleted"] == 1
