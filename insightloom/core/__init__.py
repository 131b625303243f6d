# Lazy imports so `import insightloom.core` stays cheap.
# Submodules (and LlamaIndex, tiktoken) load on first attribute access.

__all__ = [
    "InsightsEngine",
    "InsightCategory",
    "LLMCompletionService",
    "ConcurrencyLimiter",
    "get_insights_config",
]

_IMPORT_MAP = {
    "InsightsEngine": ".insights.engine",
    "InsightCategory": ".insights.models",
    "LLMCompletionService": ".insights.completion",
    "ConcurrencyLimiter": ".insights.limiter",
    "get_insights_config": ".config.config_loader",
}


def __getattr__(name):
    if name in _IMPORT_MAP:
        import importlib
        module = importlib.import_module(_IMPORT_MAP[name], __package__)
        return getattr(module, name)
    raise AttributeError(f"module 'insightloom.core' has no attribute {name}")
