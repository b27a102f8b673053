import os
import logging
from typing import Dict, Any, Optional, Tuple
from langchain_openai import ChatOpenAI
from langchain_core.messages import HumanMessage, SystemMessage

from backend.config.settings import OPENAI_MODEL

logger = logging.getLogger(__name__)


class OpenAIModel:
    """
    Wrapper for OpenAI chat models using the LangChain library.
    Provides achat for system+user prompts with per-call token limits
    and usage reporting.
    """
    def __init__(self, settings: Optional[Dict[str, Any]] = None):
        """
        Initializes the OpenAIModel using LangChain's ChatOpenAI.

        Args:
            settings: Optional dictionary with 'api_key', 'model_name', 'temperature' and 'max_tokens'.

        Raises:
            ValueError: If the API key is missing.
        """
        settings = settings or {}
        self.api_key = settings.get("api_key") or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise ValueError("OpenAI API key is required but not found in settings.")

        self.model_name = settings.get("model_name") or OPENAI_MODEL
        self.temperature = settings.get("temperature", 0.7)
        self.max_tokens = settings.get("max_tokens")
        self._clients: Dict[Tuple[str, Optional[int], float], ChatOpenAI] = {}

        self.llm = self._client(self.model_name, self.max_tokens, self.temperature)
        logger.info(f"OpenAIModel initialized with LangChain wrapper for model: {self.model_name}")

    def _client(self, model_name: str, max_tokens: Optional[int], temperature: float) -> ChatOpenAI:
        key = (model_name, max_tokens, temperature)
        if key not in self._clients:
            try:
                self._clients[key] = ChatOpenAI(
                    model=model_name,
                    api_key=self.api_key,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    timeout=600,
                )
            except Exception as e:
                logger.error(f"Failed to initialize LangChain OpenAI model: {str(e)}")
                raise
        return self._clients[key]

    @staticmethod
    def _usage(response: Any) -> Dict[str, int]:
        token_usage = (getattr(response, "response_metadata", None) or {}).get("token_usage") or {}
        if token_usage:
            return {
                "prompt_tokens": token_usage.get("prompt_tokens", 0),
                "completion_tokens": token_usage.get("completion_tokens", 0),
                "total_tokens": token_usage.get("total_tokens", 0),
            }
        usage_metadata = getattr(response, "usage_metadata", None) or {}
        return {
            "prompt_tokens": usage_metadata.get("input_tokens", 0),
            "completion_tokens": usage_metadata.get("output_tokens", 0),
            "total_tokens": usage_metadata.get("total_tokens", 0),
        }

    async def achat(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        model_name: Optional[str] = None,
    ) -> Tuple[str, Dict[str, int]]:
        """
        Asynchronously runs a chat completion.

        Returns:
            Tuple of (response text, usage dict with prompt/completion/total tokens).

        Raises:
            Exception: If the API call fails.
        """
        llm = self._client(
            model_name or self.model_name,
            max_tokens if max_tokens is not None else self.max_tokens,
            self.temperature if temperature is None else temperature,
        )
        messages = []
        if system_prompt:
            messages.append(SystemMessage(content=system_prompt))
        messages.append(HumanMessage(content=prompt))

        try:
            logger.debug(f"Invoking OpenAI model {model_name or self.model_name} asynchronously...")
            response = await llm.ainvoke(messages)
            content = response.content if isinstance(response.content, str) else str(response.content)
            return content, self._usage(response)
        except Exception as e:
            logger.exception(f"Error during asynchronous OpenAI invoke: {str(e)}")
            raise Exception(f"OpenAI API call failed (async): {str(e)}")
