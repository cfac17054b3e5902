"""Allow running as python -m voice_to_notion."""

from voice_to_notion.main import main

main()
