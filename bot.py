import os

import discord
from discord.ext import commands
from dotenv import load_dotenv
from activity.store import build_tables
from config.defaults import BOT_NAME
from config.defaults import DEFAULT_AI_BACKEND
from config.defaults import DEFAULT_CLAUDE_MAX_TOKENS
from config.defaults import DEFAULT_CLAUDE_MODEL
from config.defaults import DEFAULT_LOGS_TABLE
from config.defaults import DEFAULT_MAX_TOKENS
from config.defaults import DEFAULT_OPENAI_MODEL
from config.defaults import DEFAULT_OPENAI_VISION_MODEL
from config.defaults import DEFAULT_SESSIONS_TABLE
from config.defaults import DEFAULT_TEMPERATURE
from config.defaults import MAX_CONVERSATION_AGE_SECONDS
from config.defaults import MAX_HISTORY_LENGTH
from config.defaults import MUSIC_IDLE_DISCONNECT_SECONDS
from config.defaults import MUSIC_QUEUE_MAX
from config.defaults import SWEEP_INTERVAL_SECONDS
from config.env import env_flag
from config.env import env_float
from config.env import env_int
from config.env import parse_id_set
from config.env import parse_str_set
from controller.generation import build_generator
from controller.persona import load_persona
from conversation.store import ConversationStore
from misc.adhoc_modules.music_service import MusicService
from misc.runtime_wiring import wire_bot_runtime

load_dotenv()

# =========================
# ENV
# =========================
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")
if not DISCORD_TOKEN:
    raise RuntimeError("Missing DISCORD_TOKEN env var")

AI_BACKEND = os.getenv("FERRET9_AI_BACKEND", DEFAULT_AI_BACKEND).strip().lower()
if AI_BACKEND not in {"openai", "claude", "anthropic"}:
    print(f"[CFG] invalid FERRET9_AI_BACKEND={AI_BACKEND!r}; falling back to {DEFAULT_AI_BACKEND!r}")
    AI_BACKEND = DEFAULT_AI_BACKEND

MAX_TOKENS = env_int(
    "FERRET9_MAX_TOKENS",
    DEFAULT_MAX_TOKENS if AI_BACKEND == "openai" else DEFAULT_CLAUDE_MAX_TOKENS,
)
TEMPERATURE = env_float("FERRET9_TEMPERATURE", DEFAULT_TEMPERATURE)

if AI_BACKEND == "openai":
    from openai import OpenAI

    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    if not OPENAI_API_KEY:
        raise RuntimeError("Missing OPENAI_API_KEY env var")
    AI_MODEL = os.getenv("OPENAI_MODEL", DEFAULT_OPENAI_MODEL)
    AI_VISION_MODEL = os.getenv("OPENAI_VISION_MODEL", DEFAULT_OPENAI_VISION_MODEL)
    client = OpenAI(api_key=OPENAI_API_KEY)
else:
    import anthropic

    ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
    if not ANTHROPIC_API_KEY:
        raise RuntimeError("Missing ANTHROPIC_API_KEY env var")
    AI_MODEL = os.getenv("CLAUDE_MODEL", DEFAULT_CLAUDE_MODEL)
    AI_VISION_MODEL = AI_MODEL
    client = anthropic.Anthropic(api_key=ANTHROPIC_API_KEY)

generator = build_generator(
    AI_BACKEND,
    client=client,
    model=AI_MODEL,
    vision_model=AI_VISION_MODEL,
    max_tokens=MAX_TOKENS,
    temperature=TEMPERATURE,
)
print(
    f"[CFG] backend={AI_BACKEND} model={AI_MODEL} vision_model={AI_VISION_MODEL} "
    f"max_tokens={MAX_TOKENS} temperature={TEMPERATURE}"
)

# =========================
# PERSONA + CONVERSATIONS
# =========================
_RAW_PERSONA_PATH = os.getenv("FERRET9_PERSONA_PATH")
PERSONA_PATH = _RAW_PERSONA_PATH or os.path.join(
    os.path.dirname(os.path.abspath(__file__)), "config", "persona.yml"
)
PERSONA, PERSONA_WARNING = load_persona(PERSONA_PATH)
if PERSONA_WARNING:
    print(f"[CFG] persona warning: {PERSONA_WARNING}")
BOT_DISPLAY_NAME = PERSONA.bot_name or BOT_NAME
SYSTEM_PREAMBLE = PERSONA.render_preamble(BOT_DISPLAY_NAME)

MAX_HISTORY = env_int("FERRET9_MAX_HISTORY", MAX_HISTORY_LENGTH)
CONVERSATION_TTL_SECONDS = env_int("FERRET9_CONVERSATION_TTL_MINUTES", MAX_CONVERSATION_AGE_SECONDS // 60) * 60
SWEEP_INTERVAL = env_int("FERRET9_SWEEP_INTERVAL_MINUTES", SWEEP_INTERVAL_SECONDS // 60) * 60
NO_HISTORY_CHANNEL_IDS = parse_id_set(os.getenv("FERRET9_NO_HISTORY_CHANNEL_IDS"))

conversation_store = ConversationStore(
    max_history=MAX_HISTORY,
    max_age_seconds=CONVERSATION_TTL_SECONDS,
)
print(
    f"[CFG] persona={'fallback' if PERSONA_WARNING else ('env_override' if _RAW_PERSONA_PATH else 'file')} "
    f"name={BOT_DISPLAY_NAME} max_history={MAX_HISTORY} ttl_s={CONVERSATION_TTL_SECONDS} "
    f"sweep_s={SWEEP_INTERVAL} no_history_channels={len(NO_HISTORY_CHANNEL_IDS)}"
)

# =========================
# OWNERS + ACTIVITY
# =========================
OWNER_USER_IDS = parse_id_set(os.getenv("FERRET9_OWNER_USER_IDS"))
OWNER_USERNAMES = parse_str_set(os.getenv("FERRET9_OWNER_USERNAMES"))

ACTIVITY_LOG_CHANNEL_ID = env_int("FERRET9_ACTIVITY_LOG_CHANNEL_ID", 0)
WORKING_ROLE_ID = env_int("FERRET9_WORKING_ROLE_ID", 0)
ON_BREAK_ROLE_ID = env_int("FERRET9_ON_BREAK_ROLE_ID", 0)
AWS_REGION = os.getenv("AWS_REGION")
LOGS_TABLE_NAME = os.getenv("DYNAMODB_LOGS_TABLE", DEFAULT_LOGS_TABLE)
SESSIONS_TABLE_NAME = os.getenv("DYNAMODB_SESSIONS_TABLE", DEFAULT_SESSIONS_TABLE)
logs_table, sessions_table = build_tables(
    region=AWS_REGION,
    logs_table=LOGS_TABLE_NAME,
    sessions_table=SESSIONS_TABLE_NAME,
)
print(
    f"[CFG] owner_ids={len(OWNER_USER_IDS)} activity_channel={ACTIVITY_LOG_CHANNEL_ID or '(off)'} "
    f"roles(working={WORKING_ROLE_ID or '-'}, on_break={ON_BREAK_ROLE_ID or '-'}) "
    f"region={AWS_REGION or '(default)'} logs_table={LOGS_TABLE_NAME} sessions_table={SESSIONS_TABLE_NAME}"
)

# =========================
# MUSIC
# =========================
MUSIC_ENABLED = env_flag("FERRET9_MUSIC_ENABLED", True)
music_service = MusicService(
    enabled=MUSIC_ENABLED,
    queue_max=env_int("FERRET9_MUSIC_QUEUE_MAX", MUSIC_QUEUE_MAX),
    idle_disconnect_seconds=env_int("FERRET9_MUSIC_IDLE_DISCONNECT_SECONDS", MUSIC_IDLE_DISCONNECT_SECONDS),
)
print(
    f"[CFG] music_enabled={MUSIC_ENABLED} queue_max={music_service.queue_max} "
    f"idle_disconnect_s={music_service.idle_disconnect_seconds} "
    f"status={music_service.disabled_reason() or 'ready'}"
)

SYNC_COMMANDS = env_flag("FERRET9_SYNC_COMMANDS", False)


def user_is_owner(user: discord.abc.User) -> bool:
    uid = int(getattr(user, "id", 0) or 0)
    if uid and uid in OWNER_USER_IDS:
        return True
    if OWNER_USER_IDS:
        return False

    names = {
        str(getattr(user, "name", "") or "").strip().lower(),
        str(getattr(user, "global_name", "") or "").strip().lower(),
        str(getattr(user, "display_name", "") or "").strip().lower(),
    }
    return any(n in OWNER_USERNAMES for n in names if n)


# =========================
# DISCORD BOT
# =========================
intents = discord.Intents.default()
intents.message_content = True
intents.members = True
intents.voice_states = True

bot = commands.Bot(command_prefix="!", intents=intents, help_command=None)

wire_bot_runtime(
    bot,
    store=conversation_store,
    generator=generator,
    preamble=SYSTEM_PREAMBLE,
    bot_name=BOT_DISPLAY_NAME,
    no_history_channel_ids=NO_HISTORY_CHANNEL_IDS,
    user_is_owner=user_is_owner,
    activity_channel_id=ACTIVITY_LOG_CHANNEL_ID,
    logs_table=logs_table,
    sessions_table=sessions_table,
    working_role_id=WORKING_ROLE_ID,
    on_break_role_id=ON_BREAK_ROLE_ID,
    music_service=music_service,
    sweep_interval_seconds=SWEEP_INTERVAL,
    sync_commands=SYNC_COMMANDS,
)


if __name__ == "__main__":
    bot.run(DISCORD_TOKEN)
