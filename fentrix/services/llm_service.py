import json
import structlog
from typing import Optional, Dict, Any, List
from enum import Enum

import openai
import anthropic
import google.generativeai as genai

from ..exceptions import LLMServiceError

logger = structlog.get_logger(__name__)


class LLMProvider(str, Enum):
    DEEPSEEK = "deepseek"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"


FALLBACK_ORDER = [LLMProvider.DEEPSEEK, LLMProvider.OPENAI, LLMProvider.GOOGLE, LLMProvider.ANTHROPIC]


class LLMService:
    def __init__(
        self,
        deepseek_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        anthropic_api_key: Optional[str] = None,
        google_api_key: Optional[str] = None,
        deepseek_base_url: str = "https://api.deepseek.com/v1",
        deepseek_model_name: str = "deepseek-chat",
        openai_model_name: str = "gpt-4o-mini",
        anthropic_model_name: str = "claude-3-haiku-20240307",
        google_model_name: str = "gemini-1.5-flash"
    ):
        self.deepseek_model_name = deepseek_model_name
        self.openai_model_name = openai_model_name
        self.anthropic_model_name = anthropic_model_name
        self.google_model_name = google_model_name

        self.deepseek_client = None
        self.openai_client = None
        self.anthropic_client = None
        self.google_client = None

        if deepseek_api_key:
            try:
                # DeepSeek exposes an OpenAI-compatible API
                self.deepseek_client = openai.AsyncOpenAI(api_key=deepseek_api_key, base_url=deepseek_base_url)
                logger.info("DeepSeek client initialized", base_url=deepseek_base_url)
            except Exception as e:
                logger.warning("Failed to initialize DeepSeek client", error=str(e))

        if openai_api_key:
            try:
                self.openai_client = openai.AsyncOpenAI(api_key=openai_api_key)
                logger.info("OpenAI client initialized")
            except Exception as e:
                logger.warning("Failed to initialize OpenAI client", error=str(e))

        if anthropic_api_key:
            try:
                self.anthropic_client = anthropic.AsyncAnthropic(api_key=anthropic_api_key)
                logger.info("Anthropic client initialized")
            except Exception as e:
                logger.warning("Failed to initialize Anthropic client", error=str(e))

        if google_api_key:
            try:
                genai.configure(api_key=google_api_key)
                self.google_client = genai.GenerativeModel(self.google_model_name)
                logger.info("Google Gemini client initialized")
            except Exception as e:
                logger.warning("Failed to initialize Google Gemini client", error=str(e))

    @property
    def is_configured(self) -> bool:
        return bool(self.get_available_providers())

    async def generate_with_fallback(
        self,
        system_prompt: Optional[str],
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 3000,
        preferred_provider: Optional[LLMProvider] = None
    ) -> str:
        """
        Generate a completion, falling back across configured providers.

        Order (unless preferred_provider is given): DeepSeek, OpenAI, Gemini, Claude.
        Raises LLMServiceError when no provider succeeds.
        """
        if preferred_provider and self._is_provider_available(preferred_provider):
            try:
                return await self._generate_with_provider(
                    preferred_provider, system_prompt, user_prompt, temperature, max_tokens
                )
            except Exception as e:
                logger.warning("Preferred provider failed, trying fallbacks", provider=preferred_provider.value, error=str(e))

        providers_to_try = [p for p in FALLBACK_ORDER if p != preferred_provider]
        errors = []

        for provider in providers_to_try:
            if not self._is_provider_available(provider):
                continue
            try:
                logger.info("Attempting generation", provider=provider.value)
                return await self._generate_with_provider(
                    provider, system_prompt, user_prompt, temperature, max_tokens
                )
            except Exception as e:
                logger.warning("Provider failed, trying next provider", provider=provider.value, error=str(e))
                errors.append(f"{provider.value}: {e}")

        raise LLMServiceError(
            "All LLM providers failed. Please check API keys and try again.",
            details={"errors": errors, "available": [p.value for p in self.get_available_providers()]},
        )

    async def _generate_with_provider(
        self,
        provider: LLMProvider,
        system_prompt: Optional[str],
        user_prompt: str,
        temperature: float,
        max_tokens: int
    ) -> str:
        if provider == LLMProvider.DEEPSEEK:
            return await self._generate_chat_completion(
                self.deepseek_client, self.deepseek_model_name, system_prompt, user_prompt, temperature, max_tokens
            )
        elif provider == LLMProvider.OPENAI:
            return await self._generate_chat_completion(
                self.openai_client, self.openai_model_name, system_prompt, user_prompt, temperature, max_tokens
            )
        elif provider == LLMProvider.ANTHROPIC:
            return await self._generate_anthropic(system_prompt, user_prompt, temperature, max_tokens)
        elif provider == LLMProvider.GOOGLE:
            return await self._generate_google(system_prompt, user_prompt, temperature, max_tokens)
        else:
            raise LLMServiceError(f"Unknown provider: {provider}")

    async def _generate_chat_completion(
        self,
        client,
        model: str,
        system_prompt: Optional[str],
        user_prompt: str,
        temperature: float,
        max_tokens: int
    ) -> str:
        """Chat completion against an OpenAI-compatible endpoint (OpenAI, DeepSeek)."""
        if client is None:
            raise LLMServiceError(f"Client for {model} not available")

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        try:
            response = await client.chat.completions.create(
                model=model,
                temperature=temperature,
                max_tokens=max_tokens,
                messages=messages,
            )
            result = response.choices[0].message.content or ""
            logger.info("Chat completion finished", model=model, response_length=len(result))
            return result

        except openai.AuthenticationError as e:
            raise LLMServiceError(f"{model} authentication failed: {str(e)}")
        except openai.RateLimitError as e:
            raise LLMServiceError(f"{model} rate limit exceeded: {str(e)}")
        except Exception as e:
            raise LLMServiceError(f"{model} generation failed: {str(e)}")

    async def _generate_anthropic(self, system_prompt: Optional[str], user_prompt: str, temperature: float, max_tokens: int) -> str:
        if not self.anthropic_client:
            raise LLMServiceError("Anthropic client not available")

        try:
            kwargs = {}
            if system_prompt:
                kwargs["system"] = system_prompt
            response = await self.anthropic_client.messages.create(
                model=self.anthropic_model_name,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[{"role": "user", "content": user_prompt}],
                **kwargs,
            )
            result = response.content[0].text
            logger.info("Anthropic generation completed", model=self.anthropic_model_name, response_length=len(result))
            return result

        except Exception as e:
            raise LLMServiceError(f"Anthropic generation failed: {str(e)}")

    async def _generate_google(self, system_prompt: Optional[str], user_prompt: str, temperature: float, max_tokens: int) -> str:
        if not self.google_client:
            raise LLMServiceError("Google client not available")

        try:
            generation_config = genai.types.GenerationConfig(
                temperature=temperature,
                max_output_tokens=max_tokens
            )

            full_prompt = f"{system_prompt}\n\nUser: {user_prompt}" if system_prompt else user_prompt

            response = await self.google_client.generate_content_async(
                full_prompt,
                generation_config=generation_config
            )
            result = response.text
            logger.info("Google generation completed", response_length=len(result))
            return result

        except Exception as e:
            raise LLMServiceError(f"Google generation failed: {str(e)}")

    def _is_provider_available(self, provider: LLMProvider) -> bool:
        if provider == LLMProvider.DEEPSEEK:
            return self.deepseek_client is not None
        elif provider == LLMProvider.OPENAI:
            return self.openai_client is not None
        elif provider == LLMProvider.ANTHROPIC:
            return self.anthropic_client is not None
        elif provider == LLMProvider.GOOGLE:
            return self.google_client is not None
        return False

    def get_available_providers(self) -> List[LLMProvider]:
        return [provider for provider in FALLBACK_ORDER if self._is_provider_available(provider)]

    def parse_json_response(self, response: str) -> Dict[str, Any]:
        """Parse a JSON object from a model reply, tolerating code fences and surrounding prose."""
        cleaned = response.strip()
        if cleaned.startswith("```json"):
            cleaned = cleaned[7:]
        elif cleaned.startswith("```"):
            cleaned = cleaned[3:]
        if cleaned.endswith("```"):
            cleaned = cleaned[:-3]
        cleaned = cleaned.strip()

        try:
            return json.loads(cleaned)
        except json.JSONDecodeError:
            start = cleaned.find("{")
            if start == -1:
                return {}

            depth = 0
            for i, char in enumerate(cleaned[start:], start):
                if char == "{":
                    depth += 1
                elif char == "}":
                    depth -= 1
                    if depth == 0:
                        try:
                            return json.loads(cleaned[start:i + 1])
                        except json.JSONDecodeError:
                            return {}
            return {}


def get_llm_service() -> LLMService:
    from ..config import get_settings

    settings = get_settings()
    return LLMService(
        deepseek_api_key=settings.deepseek_api_key,
        openai_api_key=settings.openai_api_key,
        anthropic_api_key=settings.anthropic_api_key,
        google_api_key=settings.google_api_key,
        deepseek_base_url=settings.deepseek_base_url,
        deepseek_model_name=settings.deepseek_model_name,
        openai_model_name=settings.openai_model_name,
        anthropic_model_name=settings.anthropic_model_name,
        google_model_name=settings.google_model_name,
    )
