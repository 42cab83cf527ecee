"""
AI Article Generator
Rewrites source news into long-form articles and writes sector market stories from stock data.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog

from ..exceptions import LLMServiceError
from ..services.llm_service import LLMService

logger = structlog.get_logger(__name__)


CATEGORY_SYSTEM_PROMPTS = {
    "stock": """You are a professional financial news journalist specializing in stock market analysis.
Generate a comprehensive, well-structured news article based on the provided content.
Include a catchy title, an informative summary, and a detailed body with the following sections:
- Market Impact (how this news affects the stock market)
- Expert Analysis (what financial experts are saying)
- Forward Outlook (predictions and future implications)
- Key Takeaways for investors

The article MUST be at least 1000 words long with detailed analysis and examples.
Use professional financial terminology, include specific stock symbols where relevant, and provide context for retail investors.""",

    "crypto": """You are a blockchain technology expert and cryptocurrency journalist.
Create a detailed news article based on the provided content.
Include a catchy title, an informative summary, and a detailed body with the following sections:
- Market Impact (how this news affects crypto prices)
- Technical Analysis (relevant blockchain or technical aspects)
- Community Response (reaction from the crypto community)
- Future Implications (what this means for the crypto ecosystem)

The article MUST be at least 1000 words long with detailed analysis and examples.
Use appropriate crypto terminology, reference specific cryptocurrencies and tokens, and explain concepts clearly for both novice and experienced crypto enthusiasts.""",

    "health": """You are a health and medical journalist with expertise in translating complex medical information for the general public.
Write an informative health news article based on the provided content.
Include a clear title, a concise summary, and a detailed body with the following sections:
- Key Health Findings
- Expert Medical Opinions
- Practical Implications for Readers
- Recommendations (if applicable)

The article MUST be at least 1000 words long with detailed examples and medical context.
Present information accurately with appropriate health terminology, balanced reporting of risks and benefits, and context that helps readers understand the significance of the information.""",

    "finance": """You are a financial journalist with expertise in economics and business news.
Create a detailed financial news article based on the provided content.
Include an engaging title, a comprehensive summary, and a detailed body with the following sections:
- Economic Context
- Business Impact
- Expert Analysis
- Future Outlook

The article MUST be at least 1000 words long with detailed analysis and examples.
Use appropriate financial terminology, provide relevant economic context, and explain the implications for businesses and consumers.""",
}

DEFAULT_SYSTEM_PROMPT = (
    "You are a professional news editor. Generate a well-structured news article based on the provided content. "
    "Include a title, summary, and detailed body with relevant sections, facts, and analysis. "
    "The article MUST be at least 1000 words long."
)

SECTOR_ARTICLE_PROMPT = """
Generate a concise, informative, and professional financial news article about the following stocks in the {category} sector.
The market sentiment is currently {trend}.

STOCKS:
{stocks_info}

Instructions:
1. Create a compelling, realistic headline that captures market dynamics
2. Write a 4-5 paragraph article that sounds like professional financial journalism
3. Include specific details about the stocks listed, their price movements, and possible reasons
4. Avoid using the exact percentage changes provided, instead describe the movements contextually
5. Do not mention any AI generation or that this is generated content
6. Format the response as a valid JSON object with "title" and "content" fields
7. Ensure the content is factual-sounding but not claiming specific forward-looking predictions

Response Format:
{{"title": "Headline Here", "content": "Full article text here..."}}
"""


def system_prompt_for(category: str) -> str:
    return CATEGORY_SYSTEM_PROMPTS.get(category, DEFAULT_SYSTEM_PROMPT)


def fallback_article_content(title: str, category: str, content: str) -> str:
    return f"# **{title}**\n\nSummary: Recent developments in {category}.\n\n{content}"


def trend_description(average_change: float) -> str:
    if average_change > 1:
        return "bullish"
    if average_change > 0.2:
        return "positive"
    if average_change > -0.2:
        return "mixed"
    if average_change > -1:
        return "negative"
    return "bearish"


def _num(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _format_change(change: float) -> str:
    sign = "+" if change >= 0 else ""
    return f"{sign}{_num(change)}%"


def format_stocks_info(stocks: List[Dict[str, Any]]) -> str:
    return "\n".join(
        f"- {stock['symbol']} ({stock['name']}): ${_num(stock['price'])} ({_format_change(stock['change'])})"
        for stock in stocks
    )


def template_sector_article(stocks: List[Dict[str, Any]], category: str) -> Dict[str, str]:
    """Deterministic sector story used when no LLM provider is configured."""
    average = sum(stock["change"] for stock in stocks) / len(stocks)
    trend = trend_description(average)
    main = stocks[0]
    secondary = stocks[1] if len(stocks) > 1 else None
    rising = main["change"] > 0

    title = (
        f"{category} Sector {'Rises' if rising else 'Dips'} as {main['name']} "
        f"{'Leads' if rising else 'Struggles'} in {trend.upper()} Market"
    )

    content = (
        f"In a {trend} trading session for the {category} sector, {main['name']} ({main['symbol']}) "
        f"{'climbed' if rising else 'fell'} to ${_num(main['price'])}"
    )
    if secondary:
        content += (
            f", while {secondary['name']} ({secondary['symbol']}) "
            f"{'gained' if secondary['change'] > 0 else 'lost'} ground at ${_num(secondary['price'])}.\n\n"
        )
    else:
        content += ".\n\n"

    content += (
        f"Market analysts attribute the {trend} movement to changing investor sentiment and broader economic "
        f"factors affecting the {category} industry. Trading volume for {main['symbol']} reached "
        f"{main.get('volume', 0) / 1_000_000:.1f} million shares.\n\n"
    )
    content += (
        f"\"The {category} sector continues to face {'opportunities' if average > 0 else 'challenges'} as companies "
        f"adapt to evolving market conditions,\" said a senior market analyst. "
        f"\"Investors should monitor these developments closely.\"\n\n"
    )
    content += (
        f"As the market prepares for upcoming earnings reports, the outlook for {category} stocks remains "
        f"{'cautiously optimistic' if average > 0 else 'uncertain'} with potential volatility expected in the coming sessions."
    )

    return {"title": title, "content": content}


@dataclass
class SectorArticle:
    title: str
    content: str

    @property
    def summary(self) -> str:
        return self.content.split("\n\n")[0].strip()


class ArticleGenerator:
    AI_ARTICLE_MAX_TOKENS = 3000
    SECTOR_ARTICLE_MAX_TOKENS = 1000

    def __init__(self, llm_service: LLMService):
        self.llm_service = llm_service

    async def generate_ai_content(self, title: str, content: str, category: str) -> str:
        """Long-form rewrite of a source item. Raises LLMServiceError when no provider answers."""
        user_prompt = (
            "Please create a comprehensive news article (at least 1000 words) based on this content: "
            f"{title}\n\n{content}"
        )
        return await self.llm_service.generate_with_fallback(
            system_prompt=system_prompt_for(category),
            user_prompt=user_prompt,
            temperature=0.7,
            max_tokens=self.AI_ARTICLE_MAX_TOKENS,
        )

    async def generate_news_content(self, stocks: List[Dict[str, Any]], category: str) -> SectorArticle:
        if not stocks:
            raise ValueError("At least one stock is required")

        if not self.llm_service.is_configured:
            logger.info("No LLM provider configured, using template sector article", category=category)
            generated = template_sector_article(stocks, category)
            return SectorArticle(title=generated["title"].strip(), content=generated["content"].strip())

        average = sum(stock["change"] for stock in stocks) / len(stocks)
        prompt = SECTOR_ARTICLE_PROMPT.format(
            category=category,
            trend=trend_description(average),
            stocks_info=format_stocks_info(stocks),
        )

        response = await self.llm_service.generate_with_fallback(
            system_prompt=None,
            user_prompt=prompt,
            temperature=0.7,
            max_tokens=self.SECTOR_ARTICLE_MAX_TOKENS,
        )
        parsed = self.llm_service.parse_json_response(response)
        if not parsed.get("title") or not parsed.get("content"):
            raise LLMServiceError("Sector article response is missing title or content", details={"category": category})

        return SectorArticle(title=str(parsed["title"]).strip(), content=str(parsed["content"]).strip())
