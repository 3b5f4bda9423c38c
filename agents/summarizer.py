"""Summarizer agent that condenses the markdown feed into a channel digest.

The agent sends the whole feed as a single user message under a fixed
system instruction and returns the generated text. Which items make the
top-N cut is left entirely to the model.

Transport:
    OpenAI-compatible chat completions (OpenRouter by default) through a
    PydanticAI agent. The request carries the model name, the system and
    user messages, temperature, and max_tokens.

Error Handling:
    - Missing API key: ConfigError, raised before any request
    - Non-success response or connection failure: AnalysisError
    - Response without generated text: AnalysisError(malformed=True)
    Nothing is retried here: the OpenAI client and the agent are both
    built with retries disabled.
"""

import logging
import time

from openai import AsyncOpenAI, OpenAIError
from pydantic_ai import Agent
from pydantic_ai.exceptions import AgentRunError, ModelHTTPError, UnexpectedModelBehavior
from pydantic_ai.models import Model
from pydantic_ai.models.openai import OpenAIModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings

from config import Config
from errors import AnalysisError, ConfigError
from models.content import AnalysisResult

logger = logging.getLogger(__name__)

# Attribution headers requested by OpenRouter
APP_REFERER = "https://github.com/trendwire/trendwire"
APP_TITLE = "Trendwire"


SUMMARIZER_PROMPTS = {
    "ru": """Ты - AI-аналитик и редактор Telegram-канала о трендах в AI.
На вход приходит markdown-отчёт с популярными обсуждениями за день.
Составь ОДНО сообщение на русском языке, не длиннее {max_chars} символов.

## Формат
🔥 AI-тренды | [дата в формате ДД.ММ.ГГГГ]

📊 ГЛАВНОЕ СЕГОДНЯ:
• [ключевая тема - одна строка]
• [ключевая тема - одна строка]
• [ключевая тема - одна строка]

🏆 ТОП-{top_n} ТРЕНДОВ:

1. [эмодзи] [короткий заголовок]
   → [одно предложение: почему это важно]

(и так далее, ровно {top_n} пунктов, от самого важного к менее важному)

## Правила
1. Выбери ровно {top_n} самых значимых трендов: учитывай популярность, активность обсуждения и потенциальное влияние.
2. Заголовки - не длиннее 50 символов.
3. Объясняй, ПОЧЕМУ тренд важен, а не пересказывай, ЧТО произошло.
4. Технические термины оставляй на английском (LLM, GPU, MoE и т.д.).
5. Не добавляй ссылки на исходные посты и не указывай точные счётчики голосов и комментариев.
6. Используй markdown только для **жирного** и *курсива*.""",
    "en": """You are an AI analyst and editor for a Telegram channel about AI trends.
The input is a markdown report of the day's most popular discussions.
Write ONE message in English, no longer than {max_chars} characters.

## Format
🔥 AI Trends | [date as DD.MM.YYYY]

📊 TODAY'S HEADLINES:
• [key theme - one line]
• [key theme - one line]
• [key theme - one line]

🏆 TOP {top_n} TRENDS:

1. [emoji] [short title]
   → [one sentence: why it matters]

(and so on, exactly {top_n} items, most important first)

## Rules
1. Pick exactly {top_n} of the most significant trends, weighing popularity, discussion activity, and potential impact.
2. Titles must be at most 50 characters.
3. Explain WHY a trend matters rather than restating WHAT happened.
4. Keep technical terms as-is (LLM, GPU, MoE, etc.).
5. Do not include links to the source posts or exact vote/comment counts.
6. Use markdown only for **bold** and *italic*.""",
}


def build_instructions(language: str, top_n: int, max_chars: int) -> str:
    """Render the fixed system instruction for a language."""
    template = SUMMARIZER_PROMPTS.get(language, SUMMARIZER_PROMPTS["en"])
    return template.format(top_n=top_n, max_chars=max_chars)


def _create_model(config: Config, timeout: float) -> OpenAIModel:
    """Create an OpenAI-compatible model bound to the configured service.

    Raises:
        ConfigError: If OPENROUTER_API_KEY is not set
    """
    if not config.openrouter_api_key:
        raise ConfigError("OPENROUTER_API_KEY not configured", missing=["OPENROUTER_API_KEY"])
    client = AsyncOpenAI(
        base_url=config.openrouter_base_url,
        api_key=config.openrouter_api_key,
        max_retries=0,
        timeout=timeout,
        default_headers={"HTTP-Referer": APP_REFERER, "X-Title": APP_TITLE},
    )
    return OpenAIModel(
        model_name=config.summary_model,
        provider=OpenAIProvider(openai_client=client),
    )


def _token_count(usage: object, *names: str) -> int:
    """Read a token counter from a usage object (field names differ across pydantic-ai releases)."""
    for name in names:
        value = getattr(usage, name, None)
        if value is not None:
            return value
    return 0


class SummarizerAgent:
    """Distills the feed into a bounded, ranked digest.

    Example:
        >>> summarizer = SummarizerAgent(config)
        >>> result = await summarizer.summarize(snapshot.text)
        >>> print(result.text)
    """

    def __init__(self, config: Config, model: Model | None = None, timeout: float = 120.0):
        """Initialize the summarizer agent.

        Args:
            config: Application configuration with model and language settings
            model: Pre-built model to use instead of the configured service
            timeout: Request timeout in seconds for the service call
        """
        self.config = config
        self.instructions = build_instructions(
            config.language, config.summary_top_n, config.summary_max_chars
        )
        self._model = model
        self._timeout = timeout
        self._agent: Agent[None, str] | None = None
        self._settings = ModelSettings(
            temperature=config.summary_temperature,
            max_tokens=config.summary_max_tokens,
        )

    @property
    def model_name(self) -> str:
        if self._model is not None:
            return self._model.model_name
        return self.config.summary_model

    def _get_agent(self) -> Agent[None, str]:
        """Build the underlying agent on first use."""
        if self._agent is None:
            model = self._model or _create_model(self.config, self._timeout)
            self._agent = Agent(
                model,
                output_type=str,
                system_prompt=self.instructions,
                retries=0,
            )
        return self._agent

    async def summarize(self, content: str) -> AnalysisResult:
        """Condense the feed text into a digest.

        Args:
            content: Raw markdown feed text

        Returns:
            AnalysisResult with the generated text

        Raises:
            ConfigError: If the service credentials are missing
            AnalysisError: On transport failure or a response without text
        """
        agent = self._get_agent()
        start = time.time()
        try:
            result = await agent.run(content, model_settings=self._settings)
        except ModelHTTPError as e:
            logger.warning("Summarizer HTTP error | status=%d model=%s", e.status_code, e.model_name)
            raise AnalysisError(
                f"Summarizer API error: HTTP {e.status_code}", model=self.model_name
            ) from e
        except UnexpectedModelBehavior as e:
            raise AnalysisError(
                f"Malformed summarizer response: {e.message}", model=self.model_name, malformed=True
            ) from e
        except AgentRunError as e:
            raise AnalysisError(f"Summarizer run failed: {e.message}", model=self.model_name) from e
        except OpenAIError as e:
            raise AnalysisError(
                f"Summarizer transport error: {type(e).__name__}: {e}", model=self.model_name
            ) from e

        text = (result.output or "").strip()
        if not text:
            raise AnalysisError(
                "No content received from summarizer", model=self.model_name, malformed=True
            )

        usage = result.usage()
        input_tokens = _token_count(usage, "input_tokens", "request_tokens")
        output_tokens = _token_count(usage, "output_tokens", "response_tokens")
        duration = time.time() - start
        logger.info(
            "Digest generated | input_chars=%d output_chars=%d tokens=%d/%d duration=%.1fs",
            len(content),
            len(text),
            input_tokens,
            output_tokens,
            duration,
        )
        return AnalysisResult(
            text=text,
            model=self.model_name,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            duration=duration,
        )
