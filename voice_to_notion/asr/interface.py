"""Abstract speech-to-text engine interface.

Concrete providers subclass ASREngine. Engines transcribe one file per
call; chunk ordering and retries belong to the dispatch layer.
"""

from abc import ABC, abstractmethod


class ASREngine(ABC):
    """Abstract base class for speech-to-text providers.

    Subclasses must set name and implement transcribe().
    """

    name: str = ""
    display_name: str = ""

    @abstractmethod
    async def transcribe(self, audio_path: str) -> str:
        """Transcribe an audio file and return the plain transcript text.

        Args:
            audio_path: Path to an audio file within the provider's size limit.

        Returns:
            Transcript text.
        """
