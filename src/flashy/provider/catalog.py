from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class ModelOption(BaseModel):
    id: str = Field(..., description="Provider model id, e.g. openai/gpt-4o-mini")
    name: str
    provider: str
    free: bool = False


AVAILABLE_MODELS: List[ModelOption] = [
    ModelOption(id="stepfun/step-3.5-flash", name="Step 3.5 Flash", provider="StepFun", free=True),
    ModelOption(id="arcee-ai/trinity-large-preview", name="Trinity Large Preview", provider="Arcee AI", free=True),
    ModelOption(id="google/gemini-2.0-flash-001", name="Gemini 2.0 Flash", provider="Google", free=True),
    ModelOption(id="deepseek/deepseek-chat-v3-0324", name="DeepSeek V3", provider="DeepSeek"),
    ModelOption(id="openai/gpt-4o-mini", name="GPT-4o Mini", provider="OpenAI"),
    ModelOption(id="openai/gpt-4o", name="GPT-4o", provider="OpenAI"),
    ModelOption(id="anthropic/claude-3.5-sonnet", name="Claude 3.5 Sonnet", provider="Anthropic"),
    ModelOption(id="meta-llama/llama-3.3-70b-instruct", name="Llama 3.3 70B", provider="Meta"),
]

DEFAULT_MODEL = AVAILABLE_MODELS[0].id
