"""Article analysis prompt templates.

``article`` templates back /api/analyze-article (hashtags plus eye-catch in
one sectioned response); ``analysis`` templates back
/api/analyze-article-full (one JSON document).
"""

from note_analysis.entities import (
    OutputFormat,
    OutputValidation,
    PromptCacheConfig,
    PromptMetadata,
    PromptPerformance,
    PromptTemplate,
)

ARTICLE_V1_JA = PromptTemplate(
    id="article-analysis-v1-ja",
    category="article",
    version="v1",
    language="ja",
    system_prompt="""あなたはnote.com記事の包括的分析エキスパートです。記事を分析し、以下の4つを生成してください：

1. HASHTAGS: note.comで検索されやすい日本語のハッシュタグ20個（#付き、1行に1つ）
2. IMAGE_PROMPT: DALL-E用の詳細な英語プロンプト（1-2文）
3. COMPOSITION_IDEAS: 代替構成案（日本語、3-5個、各1文）
4. SUMMARY: 記事要約（日本語、100文字以内）

出力形式：
---HASHTAGS---
#タグ1
#タグ2
...
#タグ20
---IMAGE_PROMPT---
[英語プロンプト]
---COMPOSITION_IDEAS---
[構成案1]
[構成案2]
[構成案3]
---SUMMARY---
[要約]""",
    user_prompt_template="記事テキスト：\n{{articleText}}",
    variables=("articleText",),
    metadata=PromptMetadata(
        author="System",
        created_at="2025-01-15T00:00:00Z",
        description="Combined hashtag and eye-catch analysis in one call",
        tags=("production", "combined", "cached"),
    ),
    output_format=OutputFormat(
        type="structured",
        fields=("hashtags", "imagePrompt", "compositionIdeas", "summary"),
        validation=OutputValidation(
            required=("hashtags", "imagePrompt", "summary"),
            min_length={"hashtags": 20},
            max_length={"hashtags": 20, "compositionIdeas": 5, "summary": 100},
        ),
    ),
    caching=PromptCacheConfig(enabled=True, ttl=300, strategy="static"),
    max_tokens=1000,
    temperature=0.7,
)

ANALYSIS_FULL_V1_JA = PromptTemplate(
    id="analysis-full-v1-ja",
    category="analysis",
    version="v1",
    language="ja",
    system_prompt="""あなたはnote.com記事の総合分析エキスパートです。記事を分析し、以下のJSON形式で返してください。JSON以外の説明は一切含めないでください。

出力JSON構造：
{
  "suggestedTitles": ["タイトル案1〜5（キャッチーでSEO最適化）"],
  "insights": {
    "whatYouLearn": ["学習ポイント1〜5（具体的で実践的）"],
    "benefits": ["メリット1〜5（読者が得られる価値）"],
    "recommendedFor": ["おすすめ読者1〜5（具体的なペルソナ）"],
    "oneLiner": "記事の本質を1文で（30-50文字）"
  },
  "eyeCatchImage": {
    "mainPrompt": "詳細な英語画像生成プロンプト",
    "compositionIdeas": ["構図アイデア1〜3（日本語）"],
    "colorPalette": ["#HEX色1〜4"],
    "mood": "雰囲気を表す言葉",
    "style": "アートスタイル",
    "summary": "100文字以内の要約"
  },
  "hashtags": ["#タグ1〜20（日本語、note.comで検索されやすいタグ）"],
  "viralityScore": {
    "overall": 78,
    "titleAppeal": 85,
    "openingHook": 72,
    "empathy": 80,
    "shareability": 75,
    "improvements": ["冒頭に具体的な数字を入れると+8点向上"]
  },
  "readingTime": {
    "total": "3分30秒",
    "introduction": "30秒",
    "mainContent": "2分30秒",
    "conclusion": "30秒"
  },
  "rewriteSuggestions": {
    "originalTitle": "元のタイトル",
    "improvedTitles": [
      {"title": "改善タイトル", "reason": "改善理由", "expectedImprovement": "期待効果"}
    ]
  },
  "seriesIdeas": [
    {"title": "続編タイトル", "description": "内容", "targetAudience": "対象読者"}
  ],
  "monetization": {
    "score": 82,
    "recommendations": [
      {"method": "収益化手法", "expectedRevenue": "想定収益", "difficulty": "低", "description": "説明"}
    ]
  },
  "emotionalAnalysis": {
    "tones": {"positive": 70, "analytical": 20, "neutral": 10},
    "emotionalFlow": "興味→共感→行動意欲",
    "audienceFit": [{"audience": "ビジネスパーソン", "score": 95}]
  }
}

重要な注意事項：
- 必ず有効なJSONフォーマットで出力してください
- マークダウン記法やコードブロックは絶対に使用しないでください
- 配列の要素数を必ず厳守してください（タイトル5個、学習5個、メリット5個、読者5個、構図3個、色4個、ハッシュタグ20個）
- ハッシュタグは「#」を必ず含めてください
- 色コードは必ず「#」付きの16進数形式（例：#4A90E2）で記述してください""",
    user_prompt_template="記事テキスト：\n{{articleText}}",
    variables=("articleText",),
    metadata=PromptMetadata(
        author="System",
        created_at="2025-01-15T00:00:00Z",
        updated_at="2025-01-20T00:00:00Z",
        description="Comprehensive article analysis with all components",
        tags=("production", "comprehensive", "optimized"),
        performance=PromptPerformance(
            avg_input_tokens=550,
            avg_output_tokens=480,
            success_rate=0.96,
            usage_count=680,
            avg_response_time=2200,
            quality_score=4.7,
            last_updated="2025-01-20T00:00:00Z",
        ),
    ),
    output_format=OutputFormat(
        type="json",
        fields=("suggestedTitles", "insights", "eyeCatchImage", "hashtags"),
        validation=OutputValidation(
            required=("suggestedTitles", "insights", "hashtags"),
            min_length={"suggestedTitles": 5, "hashtags": 20},
            max_length={"suggestedTitles": 5, "eyeCatchImage.summary": 100, "hashtags": 20},
        ),
    ),
    caching=PromptCacheConfig(enabled=True, ttl=300, strategy="static"),
    max_tokens=4000,
    temperature=0.7,
)

ANALYSIS_LIGHT_V2_JA = PromptTemplate(
    id="analysis-light-v2-ja",
    category="analysis",
    version="v2",
    language="ja",
    system_prompt="""あなたはnote.com記事の分析エキスパートです。記事を分析し、以下のJSON形式のみで返してください。

{
  "suggestedTitles": ["タイトル案1〜5"],
  "insights": {
    "whatYouLearn": ["学習ポイント1〜3"],
    "benefits": ["メリット1〜3"],
    "recommendedFor": ["おすすめ読者1〜3"],
    "oneLiner": "記事の本質を1文で"
  },
  "hashtags": ["#タグ1〜20"]
}

JSON以外の説明やコードブロックは含めないでください。""",
    user_prompt_template="記事テキスト：\n{{articleText}}",
    variables=("articleText",),
    metadata=PromptMetadata(
        author="System",
        created_at="2025-01-20T00:00:00Z",
        description="Lightweight analysis without image, virality and monetization sections",
        tags=("experimental", "light", "json"),
    ),
    output_format=OutputFormat(
        type="json",
        fields=("suggestedTitles", "insights", "hashtags"),
    ),
    caching=PromptCacheConfig(enabled=True, ttl=300, strategy="static"),
    max_tokens=1500,
    temperature=0.7,
)

ANALYSIS_TEMPLATES = (ARTICLE_V1_JA, ANALYSIS_FULL_V1_JA, ANALYSIS_LIGHT_V2_JA)
