"""
Pytest configuration and fixtures for note-analysis tests.
"""

import json
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from note_analysis.api.app import create_app
from note_analysis.config import Settings

SAMPLE_ARTICLE = (
    "リモートワークを始めて三年が経ちました。最初は自宅で集中できず、生活リズムも崩れがちでした。"
    "そこで朝の散歩、ポモドーロ・テクニック、そして週に一度の振り返りを習慣にしたところ、"
    "仕事の生産性が大きく向上しました。この記事では、私が試行錯誤の末にたどり着いた"
    "在宅勤務の工夫と、チームとのコミュニケーションを円滑にするためのコツを具体的に紹介します。"
)

HASHTAGS = [f"#タグ{i}" for i in range(1, 21)]

ARTICLE_OUTPUT = "\n".join(
    [
        "---HASHTAGS---",
        *HASHTAGS,
        "---IMAGE_PROMPT---",
        "A calm home office at sunrise with a laptop, coffee and a small plant",
        "---COMPOSITION_IDEAS---",
        "朝日が差し込むデスクを俯瞰で撮影",
        "散歩道とノートパソコンの対比",
        "ポモドーロタイマーのクローズアップ",
        "---SUMMARY---",
        "在宅勤務三年目の筆者が、生活リズムと生産性を整えた習慣とチーム連携のコツを紹介する。",
    ]
)

FULL_OUTPUT = json.dumps(
    {
        "suggestedTitles": [f"タイトル{i}" for i in range(1, 6)],
        "insights": {
            "whatYouLearn": ["習慣化のコツ"],
            "benefits": ["生産性の向上"],
            "recommendedFor": ["在宅勤務の初心者"],
            "oneLiner": "小さな習慣が在宅勤務を変える",
        },
        "eyeCatchImage": {
            "mainPrompt": "A bright home office",
            "compositionIdeas": ["俯瞰", "クローズアップ", "対比", "余分な案"],
            "colorPalette": ["#4A90E2", "#50E3C2", "#F5A623", "#FFFFFF", "#000000"],
            "mood": "爽やか",
            "style": "ミニマルモダン",
            "summary": "在宅勤務の工夫を紹介する記事",
        },
        "hashtags": HASHTAGS,
        "viralityScore": {
            "overall": 78,
            "titleAppeal": 150,
            "openingHook": -5,
            "empathy": 80,
            "shareability": 75,
            "improvements": ["冒頭に数字を入れる"],
        },
        "readingTime": {
            "total": "3分30秒",
            "introduction": "30秒",
            "mainContent": "2分30秒",
            "conclusion": "30秒",
        },
        "monetization": {"score": 82, "recommendations": []},
        "emotionalAnalysis": {
            "tones": {"positive": 70, "analytical": 20, "neutral": 10},
            "emotionalFlow": "興味→共感→行動",
            "audienceFit": [{"audience": "ビジネスパーソン", "score": 95}],
        },
    },
    ensure_ascii=False,
)

HASHTAG_OUTPUT = "\n".join(HASHTAGS)

EYECATCH_OUTPUT = "\n".join(
    [
        "---IMAGE_PROMPT---",
        "A minimalist desk by a window with morning light, a notebook and a steaming mug",
        "---COMPOSITION_IDEAS---",
        "1. 窓辺のデスクを斜め上から撮影",
        "2. 手帳とマグカップのクローズアップ",
        "3. 青と白を基調にした余白の多い構図",
        "---SUMMARY---",
        "在宅勤務を快適にする朝の習慣と集中術をまとめた記事。",
    ]
)

TITLES = [f"【保存版】在宅勤務のコツ{i}選" for i in range(1, 6)]

TITLES_OUTPUT = "\n".join(f"{i}. {title}" for i, title in enumerate(TITLES, start=1))


def default_output(request: dict) -> str:
    """Pick a canned model answer matching the requested prompt."""
    system = request["system"][0]["text"]
    if "---HASHTAGS---" in system:
        return ARTICLE_OUTPUT
    if "---IMAGE_PROMPT---" in system:
        return EYECATCH_OUTPUT
    if "suggestedTitles" in system:
        return FULL_OUTPUT
    if "タイトル生成エキスパート" in system:
        return TITLES_OUTPUT
    return HASHTAG_OUTPUT


def make_message(text: str, model: str = "claude-sonnet-4-20250514", **usage) -> SimpleNamespace:
    """Build an object shaped like an Anthropic Message."""
    usage_fields = {
        "input_tokens": 1000,
        "output_tokens": 500,
        "cache_creation_input_tokens": 0,
        "cache_read_input_tokens": 0,
    }
    usage_fields.update(usage)
    return SimpleNamespace(
        id="msg_test",
        model=model,
        stop_reason="end_turn",
        content=[SimpleNamespace(type="text", text=text)],
        usage=SimpleNamespace(**usage_fields),
    )


class FakeMessages:
    """Stands in for ``AsyncAnthropic().messages``."""

    def __init__(self) -> None:
        self.calls: list[dict] = []
        self.text: str | None = None
        self.error: Exception | None = None
        self.message: SimpleNamespace | None = None

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if self.message is not None:
            return self.message
        text = self.text if self.text is not None else default_output(kwargs)
        return make_message(text, model=kwargs["model"])


class FakeCompletionClient:
    """Anthropic-compatible client that never touches the network."""

    def __init__(self) -> None:
        self.messages = FakeMessages()


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_client() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture
def sample_article() -> str:
    return SAMPLE_ARTICLE


def make_settings(**overrides) -> Settings:
    """Test settings independent of the developer's environment."""
    values = {
        "anthropic_api_key": "sk-ant-test-key",
        "anthropic_model": "claude-sonnet-4-20250514",
        "max_article_length": 30000,
        "min_article_length": 100,
        "rate_limit_max_requests": 5,
        "rate_limit_window_ms": 60000,
        "rate_limit_strategy": "fixed",
        "enable_request_deduplication": True,
        "enable_response_cache": True,
        "cache_backend": "memory",
        "enable_usage_analytics": True,
        "output_validation_mode": "lenient",
        "app_env": "development",
        "api_access_token": None,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def test_settings() -> Settings:
    return make_settings()


@pytest.fixture
def client(test_settings, fake_client):
    """Create a test client with a fake Anthropic client."""
    app = create_app(test_settings, completion_client=fake_client)
    with TestClient(app) as test_client:
        yield test_client
