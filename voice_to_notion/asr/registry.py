"""ASR engine registry with configuration-driven provider selection.

Maps provider name strings to engine classes. Use get_asr_engine() to
instantiate an engine by name with engine-specific configuration.
"""

from voice_to_notion.asr.interface import ASREngine
from voice_to_notion.asr.whisper import GroqWhisperEngine, OpenAIWhisperEngine
from voice_to_notion.utils.errors import InvalidArgumentError

ASR_ENGINES: dict[str, type[ASREngine]] = {
    "groq": GroqWhisperEngine,
    "openai": OpenAIWhisperEngine,
}


def get_asr_engine(provider: str, **kwargs: object) -> ASREngine:
    """Create an ASR engine instance by provider name.

    Args:
        provider: Provider name ("groq" or "openai").
        **kwargs: Engine-specific configuration passed to the constructor.

    Returns:
        An initialized ASREngine instance.

    Raises:
        InvalidArgumentError: If the provider name is not registered.
    """
    engine_cls = ASR_ENGINES.get(provider)
    if not engine_cls:
        available = ", ".join(sorted(ASR_ENGINES.keys()))
        raise InvalidArgumentError(
            f"Unknown transcription provider: '{provider}'. Available: {available}"
        )
    return engine_cls(**kwargs)
