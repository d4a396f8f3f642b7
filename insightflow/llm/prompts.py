"""Prompt templates for planning, step analysis and synthesis."""

PLAN_SYSTEM_PROMPT = """You are a research coordinator. Break down complex queries into 3-4 distinct research steps/sub-questions for deep analysis.

Return ONLY a JSON array of objects with this exact format:
[{"query": "specific sub-question to research"}]

Do not include any other text or formatting."""

PLAN_PROMPT_TEMPLATE = 'Break down this query into research steps: "{query}"'

ANALYSIS_SYSTEM_PROMPT = """You are a research analyst. Based on the web search results provided, analyze and synthesize the information to answer the user's query.

Provide a comprehensive, factual response based ONLY on the search results.
Cite information appropriately in your analysis."""

ANALYSIS_PROMPT_TEMPLATE = """Query: {query}

Search Results:
{context}

Please provide a detailed analysis answering the query."""

SYNTHESIS_SYSTEM_PROMPT = """You are a research report writer. Based on the research findings provided, create a comprehensive report.

Return ONLY a JSON object with this exact format:
{"summary": "executive summary (2-3 sentences)", "deepDive": "detailed markdown analysis with multiple sections"}

The deep dive should be thorough, well-structured with headers, and include all key findings."""

SYNTHESIS_PROMPT_TEMPLATE = """Original Query: {query}

Research Findings:
{dossier}

Create the final research report in JSON format."""

# Gemini takes a single prompt and grounds research steps with Google Search
GEMINI_PLAN_PROMPT_TEMPLATE = (
    "You are a research coordinator. Break down this query into 3-4 distinct "
    'research steps/sub-questions to perform a deep analysis: "{query}". '
    "Return ONLY a JSON array of objects with a 'query' field."
)

GEMINI_STEP_PROMPT_TEMPLATE = (
    'Perform a detailed search and provide facts/data for: "{query}". '
    "Be concise but thorough."
)

GEMINI_SYNTHESIS_PROMPT_TEMPLATE = """Original Request: {query}

Based on these research findings:
{dossier}

Provide a comprehensive "Deep Analysis" in two parts: 1. A executive summary (JSON field: summary). 2. A detailed multi-section deep dive analysis in Markdown (JSON field: deepDive)."""


def join_prompt(system_prompt: str, prompt: str) -> str:
    """Fold a system prompt into a single completion prompt."""
    return f"{system_prompt}\n\n{prompt}"
