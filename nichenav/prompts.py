"""
NicheNav Backend: LLM Prompt Templates

All prompts are defined here. The system instruction comes from ModelConfig and is injected in llm.py.
Topics are embedded verbatim; nothing here performs I/O or raises.
"""

from nichenav.models import MicroNiche


# -----------------------------------------------------------------------------
# 1. build_niche_analysis_prompt
# -----------------------------------------------------------------------------

NICHE_ANALYSIS_PROMPT = """
# Role
You are the "Niche Finder" module for NicheNav, a market research tool for entrepreneurs. Given a broad market topic, you break it into profitable micro-niches: narrowly scoped segments with a specific audience, a real pain point, and a proven way to make money.

You output a single JSON object. Nothing else: no markdown, no explanation, no text before or after the JSON.

# Method

1. Think about current search behavior and trend direction for the topic.
2. Look for underserved segments: specific audiences whose needs the big players ignore.
3. Check each candidate against real competitors and proven revenue models.
4. Prefer growing segments over declining ones, and entry barriers a solo founder can clear.

# Selection Criteria

Find 4-6 micro-niches. Each one must have:
- Monthly search volume between 1,000 and 50,000 (the low-competition sweet spot). Never below 100 or above 100,000.
- Clear monetization potential backed by products or services that already sell.
- An identifiable audience with a specific pain point.
- A growing or stable trend.

# Output Format

Return ONLY a single JSON object. No markdown code fences. No explanatory text. No trailing commas.

{
  "overallSearchVolume": 120000,
  "overallCompetition": "low | medium | high",
  "monetizationPotential": 72,
  "microNiches": [
    {
      "name": "Specific, actionable micro-niche name naming the exact audience",
      "description": "Who the audience is, their pain point, and why this niche is profitable (200-250 characters)",
      "searchVolume": 8500,
      "competition": "low | medium | high",
      "monetizationScore": 78,
      "validationScore": 81,
      "examples": ["Real product/service with price point", "Successful brand in this space", "Specific monetization method"]
    }
  ]
}

# Field Rules

- overallSearchVolume: integer, realistic monthly searches for the whole topic.
- overallCompetition / competition: exactly one of "low", "medium", "high". One word, no reasoning.
- monetizationPotential, monetizationScore, validationScore: integers from 1 to 100.
- searchVolume: integer from 100 to 100000. Plain number, no commas or units.
- examples: 2-4 strings, each specific and real. Never an empty list.
- name and description: never empty.
"""


def build_niche_analysis_prompt(topic: str) -> list[dict]:
    """
    Build prompt to break a broad topic into 4-6 micro-niches.

    Expected output: analysis payload read by parsing.coerce_niche_analysis.

    Returns:
        [{"role": "user", "content": "..."}]
    """
    return [{"role": "user", "content": NICHE_ANALYSIS_PROMPT + f'\n\nTopic to analyze: "{topic}"'}]


# -----------------------------------------------------------------------------
# 2. build_validation_report_prompt
# -----------------------------------------------------------------------------

VALIDATION_REPORT_PROMPT = """
# Role
You are the "Niche Validator" module for NicheNav. You receive one micro-niche and produce a market validation report a founder can act on: who already competes, what they miss, how to make money, what can go wrong, and how long it takes to launch.

You output a single JSON object. Nothing else: no markdown, no explanation, no text before or after the JSON.

# Research Requirements

1. Competitors: 3-5 real brands, creators or companies in this exact niche, with realistic audience sizes.
2. Content gaps: specific unmet needs, topics or formats competitors are not covering.
3. Monetization: revenue models that work in this niche, with realistic pricing.
4. Risks: genuine market risks, each with a way to mitigate it.
5. Timeline: a realistic time to market and a three-phase roadmap with budgets.

# Output Format

Return ONLY a single JSON object. No markdown code fences. No explanatory text. No trailing commas.

{
  "profitabilityScore": 74,
  "audienceSize": 250000,
  "competitors": [
    {
      "name": "Competitor name",
      "website": "https://example.com or null",
      "socialMedia": "https://instagram.com/handle or null",
      "followers": 45000,
      "engagement": 4.2,
      "strengths": ["Specific advantage 1", "Specific advantage 2"],
      "weaknesses": ["Specific gap 1", "Opportunity for new entrants"]
    }
  ],
  "contentGaps": ["Underserved topic or format", "Pain point nobody addresses"],
  "monetizationStrategies": ["Digital course priced at $197-$497", "Another model with revenue range"],
  "riskFactors": ["Specific risk and how to mitigate it"],
  "timeToMarket": "3-6 months for MVP, 8-12 months for full launch",
  "successRoadmap": {
    "phase1": {"timeline": "Months 1-3", "budget": "$500-$2,000", "objectives": ["..."], "keyActions": ["..."]},
    "phase2": {"timeline": "Months 4-6", "budget": "$2,000-$5,000", "objectives": ["..."], "keyActions": ["..."]},
    "phase3": {"timeline": "Months 7-12", "budget": "$5,000-$15,000", "objectives": ["..."], "keyActions": ["..."]}
  }
}

# Field Rules

- profitabilityScore: integer from 1 to 100.
- audienceSize: integer, total addressable audience.
- followers: integer. engagement: percentage as a number from 1 to 15 (no % sign).
- contentGaps, monetizationStrategies: 4-5 items each. riskFactors: 3-4 items.
- competitors: never an empty list, every competitor has a name.
"""


def build_validation_report_prompt(micro_niche: MicroNiche, topic: str | None = None) -> list[dict]:
    """
    Build prompt to validate one micro-niche.

    Embeds the niche's description, search volume, competition and monetization
    score so the model grounds the report in the analysis it came from.

    Expected output: report payload read by parsing.coerce_validation_report.
    """
    parts = [VALIDATION_REPORT_PROMPT]
    parts.append(f'\n\n# Micro-niche\n"{micro_niche.name}"')
    if topic:
        parts.append(f'\n\n# Broader Topic\n"{topic}"')
    parts.append(
        "\n\n# Current Market Context"
        f"\n- Description: {micro_niche.description}"
        f"\n- Monthly Search Volume: {micro_niche.search_volume}"
        f"\n- Competition Level: {micro_niche.competition}"
        f"\n- Monetization Score: {micro_niche.monetization_score}%"
    )
    if micro_niche.examples:
        parts.append("\n- Known Examples: " + "; ".join(micro_niche.examples))
    return [{"role": "user", "content": "".join(parts)}]
