from __future__ import annotations

BOT_NAME = "Ferret9"

# Conversation cache
MAX_HISTORY_LENGTH = 10
MAX_CONVERSATION_AGE_SECONDS = 30 * 60
SWEEP_INTERVAL_SECONDS = 10 * 60

# Discord transport
DISCORD_MAX_MESSAGE_LEN = 2000
CHUNK_MAX_LENGTH = 1950  # leaves room for "[Part i/N] " labels
EMBED_DESCRIPTION_MAX = 4000
ACTIVITY_FIELD_MAX = 1000

# Generation
DEFAULT_AI_BACKEND = "openai"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_OPENAI_VISION_MODEL = "gpt-4o"
DEFAULT_CLAUDE_MODEL = "claude-sonnet-4-5"
DEFAULT_MAX_TOKENS = 500
DEFAULT_CLAUDE_MAX_TOKENS = 1024
DEFAULT_TEMPERATURE = 0.7
DEFAULT_IMAGE_PROMPT = "What do you see in this image?"

APOLOGY_TEXT = "I'm sorry, I encountered an error while processing your request. Please try again later."
REPORT_APOLOGY_TEXT = "I'm sorry, I encountered an error while generating the report. Please try again later."
GREETING_TEXT = (
    "Hello! I'm Ferret9. You can ask me questions or chat with me by mentioning me "
    "followed by your message. You can also send images for me to analyze."
)

# Activity reporting
MANILA_UTC_OFFSET_HOURS = 8
DEFAULT_LOGS_TABLE = "ferret9-activity-logs"
DEFAULT_SESSIONS_TABLE = "ferret9-work-sessions"

# Music
MUSIC_QUEUE_MAX = 50
MUSIC_IDLE_DISCONNECT_SECONDS = 300
MUSIC_QUEUE_PREVIEW = 10
