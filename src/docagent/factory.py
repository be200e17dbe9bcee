"""Shared construction helpers for providers, tools, agents and sessions."""

from __future__ import annotations

from pathlib import Path

from docagent.agent import Agent
from docagent.config import Settings
from docagent.models.base import BaseProvider
from docagent.models.bedrock import BedrockProvider
from docagent.models.gemini import GeminiProvider
from docagent.models.openai_compat import OpenAICompatProvider
from docagent.prompts import PromptBuilder
from docagent.safety.policy import SafetyPolicy
from docagent.safety.sandbox import SandboxLayout
from docagent.session import DocumentationSession
from docagent.tools.builtins import package_tools
from docagent.tools.registry import ToolRegistry


PROVIDER_CHOICES = ("auto", "bedrock", "gemini", "local")


class ProviderNotConfigured(LookupError):
    """Raised when no LLM provider credentials are available."""


def _timeout(settings: Settings, default: float) -> float:
    return settings.request_timeout_seconds or default


def build_provider(settings: Settings) -> BaseProvider:
    """Pick the provider named in settings, or the first one with credentials."""
    choice = settings.provider.lower()
    if choice not in PROVIDER_CHOICES:
        raise ProviderNotConfigured(f"unknown provider {settings.provider!r}")
    if choice in {"auto", "bedrock"} and settings.bedrock_api_key:
        return BedrockProvider(
            api_key=settings.bedrock_api_key,
            region=settings.bedrock_region,
            model=settings.bedrock_model,
            endpoint=settings.bedrock_endpoint,
            max_tokens=settings.max_tokens,
            timeout_seconds=_timeout(settings, 60),
        )
    if choice in {"auto", "gemini"} and settings.gemini_api_key:
        return GeminiProvider(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            endpoint=settings.gemini_endpoint,
            max_output_tokens=settings.max_tokens,
            timeout_seconds=_timeout(settings, 60),
        )
    if choice in {"auto", "local"} and settings.local_llm_endpoint:
        return OpenAICompatProvider(
            base_url=settings.local_llm_endpoint,
            model=settings.local_llm_model,
            api_key=settings.local_llm_api_key,
            max_tokens=settings.max_tokens,
            timeout_seconds=_timeout(settings, 120),
        )
    if choice == "auto":
        raise ProviderNotConfigured("no LLM provider API key set")
    raise ProviderNotConfigured(f"provider {choice!r} is not configured")


def build_layout(settings: Settings, package_root: str | Path) -> SandboxLayout:
    return SandboxLayout(
        package_root=Path(package_root),
        write_dir=settings.write_dir,
        target_name=settings.target_name,
    )


def build_registry(layout: SandboxLayout) -> ToolRegistry:
    registry = ToolRegistry()
    registry.register_all(package_tools(layout))
    return registry


def build_policy(settings: Settings) -> SafetyPolicy:
    return SafetyPolicy(
        max_iterations=settings.max_iterations,
        unstable_max_iterations=settings.unstable_max_iterations,
        max_limit_recoveries=settings.max_limit_recoveries,
    )


def build_session(
    settings: Settings,
    provider: BaseProvider,
    package_root: str | Path,
) -> DocumentationSession:
    layout = build_layout(settings, package_root)
    policy = build_policy(settings)
    agent = Agent(provider=provider, registry=build_registry(layout), policy=policy)
    prompts = PromptBuilder(layout.package_root, layout.target_relpath)
    return DocumentationSession(agent=agent, layout=layout, prompts=prompts, policy=policy)
