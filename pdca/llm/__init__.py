"""
LLM provider adapters for PDCA Planner

Usage:
    from pdca.llm import create_llm_from_env
    from pdca.llm.prompts import GOAL_PLANNING_SYSTEM_PROMPT, build_messages

    llm = create_llm_from_env()
    reply = llm.invoke(build_messages(GOAL_PLANNING_SYSTEM_PROMPT, "我想学游泳"))
"""

from .base import BaseLLM, ChatCompletionsLLM, LLMError, LLMConfigError
from .glm import GLMLLM
from .openai_compat import OpenAICompatibleLLM
from .factory import LLMConfig, create_llm, create_llm_from_config, create_llm_from_env, config_from_env

__all__ = [
    'BaseLLM',
    'ChatCompletionsLLM',
    'LLMError',
    'LLMConfigError',
    'GLMLLM',
    'OpenAICompatibleLLM',
    'LLMConfig',
    'create_llm',
    'create_llm_from_env',
    'create_llm_from_config',
    'config_from_env',
]
