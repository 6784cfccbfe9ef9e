from __future__ import annotations

import asyncio
import itertools
from collections import deque
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from urllib.parse import urlparse

import discord

try:
    import yt_dlp
except ModuleNotFoundError:  # pragma: no cover - dependency may be absent in some test envs
    yt_dlp = None

from config.defaults import MUSIC_IDLE_DISCONNECT_SECONDS
from config.defaults import MUSIC_QUEUE_MAX
from config.defaults import MUSIC_QUEUE_PREVIEW

DIRECT_MEDIA_SUFFIXES = (".mp3", ".ogg", ".wav", ".m4a")
FFMPEG_BEFORE_OPTIONS = "-reconnect 1 -reconnect_streamed 1 -reconnect_delay_max 5"
DEFAULT_VOLUME = 0.8

_track_ids = itertools.count(1)


def classify_query(query: str) -> str:
    text = (query or "").strip()
    lowered = text.lower()
    if not (lowered.startswith("http://") or lowered.startswith("https://")):
        return "search"
    path = urlparse(lowered).path
    if path.endswith(DIRECT_MEDIA_SUFFIXES):
        return "direct"
    if "soundcloud.com" in lowered:
        return "soundcloud"
    if "youtube.com" in lowered or "youtu.be" in lowered:
        return "youtube"
    return "url"


def source_display_name(source: str | None) -> str:
    return {
        "youtube": "YouTube",
        "soundcloud": "SoundCloud",
        "arbitrary": "Direct File",
    }.get(source or "", source or "Unknown")


def source_colour(source: str | None) -> discord.Colour:
    if source == "youtube":
        return discord.Colour(0xFF0000)
    if source == "soundcloud":
        return discord.Colour(0xFF7700)
    if source == "arbitrary":
        return discord.Colour(0x00AAFF)
    return discord.Colour(0x7289DA)


def format_duration(seconds: int) -> str:
    total = int(seconds or 0)
    if total <= 0:
        return "Unknown"
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


@dataclass(slots=True)
class Track:
    title: str
    url: str
    author: str
    duration_seconds: int
    source: str
    requested_by_id: int
    requested_by_name: str
    thumbnail: str | None = None
    track_id: int = field(default_factory=lambda: next(_track_ids))

    @property
    def duration(self) -> str:
        return format_duration(self.duration_seconds)


@dataclass(slots=True)
class QueueSnapshot:
    current: Track
    upcoming: list[Track]
    remaining: int


@dataclass(slots=True)
class GuildPlayback:
    guild_id: int
    queue: deque[Track] = field(default_factory=deque)
    current: Track | None = None
    voice_client: Any = None
    idle_task: asyncio.Task | None = None


class MusicService:
    def __init__(
        self,
        *,
        enabled: bool,
        queue_max: int = MUSIC_QUEUE_MAX,
        idle_disconnect_seconds: int = MUSIC_IDLE_DISCONNECT_SECONDS,
    ) -> None:
        self.enabled_flag = bool(enabled)
        self.queue_max = max(1, int(queue_max or MUSIC_QUEUE_MAX))
        self.idle_disconnect_seconds = max(0, int(idle_disconnect_seconds or 0))

        self._guilds: dict[int, GuildPlayback] = {}
        self._lock = asyncio.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None

    def disabled_reason(self) -> str | None:
        if not self.enabled_flag:
            return "music feature flag is off"
        if yt_dlp is None:
            return "yt-dlp is not installed"
        return None

    def _state(self, guild_id: int) -> GuildPlayback:
        gid = int(guild_id)
        state = self._guilds.get(gid)
        if state is None:
            state = GuildPlayback(guild_id=gid)
            self._guilds[gid] = state
        return state

    def is_active(self, guild_id: int) -> bool:
        state = self._guilds.get(int(guild_id))
        if state is None:
            return False
        vc = state.voice_client
        return bool(state.current is not None or (vc is not None and (vc.is_playing() or vc.is_paused())))

    def is_current(self, guild_id: int, track: Track) -> bool:
        state = self._guilds.get(int(guild_id))
        return bool(state is not None and state.current is not None and state.current.track_id == track.track_id)

    def bot_voice_channel_id(self, guild_id: int) -> int | None:
        state = self._guilds.get(int(guild_id))
        if state is None or state.voice_client is None:
            return None
        channel = getattr(state.voice_client, "channel", None)
        return int(channel.id) if channel is not None else None

    def _extract_info_sync(self, target: str, *, flat_search: bool) -> dict[str, Any]:
        if yt_dlp is None:
            raise RuntimeError("yt-dlp dependency missing")
        opts = {
            "quiet": True,
            "no_warnings": True,
            "noplaylist": True,
            "skip_download": True,
            "format": "bestaudio/best",
        }
        if flat_search:
            opts["extract_flat"] = "in_playlist"
        with yt_dlp.YoutubeDL(opts) as ydl:
            return ydl.extract_info(target, download=False)

    @staticmethod
    def _first_entry(info: Any) -> dict[str, Any] | None:
        if not isinstance(info, dict):
            return None
        entries = info.get("entries")
        if entries is None:
            return info
        for entry in entries:
            if isinstance(entry, dict):
                return entry
        return None

    @staticmethod
    def _source_for(info: dict[str, Any], kind: str) -> str:
        if kind == "direct":
            return "arbitrary"
        extractor = str(info.get("extractor_key") or info.get("ie_key") or info.get("extractor") or "").lower()
        if "youtube" in extractor:
            return "youtube"
        if "soundcloud" in extractor:
            return "soundcloud"
        if "generic" in extractor:
            return "arbitrary"
        return extractor or kind

    def _track_from_info(self, info: dict[str, Any], *, kind: str, query: str, requested_by) -> Track:
        url = str(info.get("webpage_url") or info.get("original_url") or info.get("url") or query).strip()
        duration_raw = info.get("duration")
        return Track(
            title=str(info.get("title") or "Unknown title").strip() or "Unknown title",
            url=url,
            author=str(info.get("uploader") or info.get("channel") or info.get("artist") or "Unknown artist").strip(),
            duration_seconds=int(duration_raw) if isinstance(duration_raw, (int, float)) else 0,
            source=self._source_for(info, kind),
            requested_by_id=int(getattr(requested_by, "id", 0) or 0),
            requested_by_name=str(getattr(requested_by, "name", "") or ""),
            thumbnail=info.get("thumbnail") or None,
        )

    async def search(self, query: str, *, requested_by) -> tuple[bool, Track | None, str | None]:
        text = (query or "").strip()
        if not text:
            return (False, None, "missing query")
        kind = classify_query(text)
        print(f"[MUSIC] action=search kind={kind} query={text[:120]}")
        if kind == "search":
            targets = [f"ytsearch1:{text}", f"scsearch1:{text}"]
        else:
            targets = [text]

        last_error: str | None = None
        for target in targets:
            try:
                info = await asyncio.to_thread(self._extract_info_sync, target, flat_search=(kind == "search"))
            except Exception as e:
                last_error = str(e)[:160]
                print(f"[MUSIC] action=search result=error target={target[:80]} error={last_error}")
                continue
            entry = self._first_entry(info)
            if entry is not None:
                return (True, self._track_from_info(entry, kind=kind, query=text, requested_by=requested_by), None)
            print(f"[MUSIC] action=search result=empty target={target[:80]}")
        return (False, None, last_error)

    async def resolve_stream_url(self, track: Track) -> tuple[bool, str | None, str | None]:
        if track.source == "arbitrary" and urlparse(track.url).path.lower().endswith(DIRECT_MEDIA_SUFFIXES):
            return (True, track.url, None)
        try:
            info = await asyncio.to_thread(self._extract_info_sync, track.url, flat_search=False)
        except Exception as e:
            return (False, None, f"stream resolution failed: {str(e)[:160]}")

        info = self._first_entry(info)
        if info is None:
            return (False, None, "extractor returned invalid stream response")

        url = str(info.get("url") or "").strip()
        if not url:
            formats = info.get("formats")
            if isinstance(formats, list):
                for row in reversed(formats):
                    if not isinstance(row, dict):
                        continue
                    candidate = str(row.get("url") or "").strip()
                    if not candidate:
                        continue
                    if str(row.get("vcodec") or "").strip().lower() == "none":
                        url = candidate
                        break
        if not url:
            return (False, None, "no playable audio stream URL found")
        return (True, url, None)

    async def play(self, *, guild, voice_channel, query: str, requested_by) -> tuple[bool, str, Track | None]:
        reason = self.disabled_reason()
        if reason:
            return (False, f"Music is disabled: {reason}.", None)
        if guild is None:
            return (False, "❌ | This command only works in a server.", None)

        self._loop = asyncio.get_running_loop()
        ok, track, err = await self.search(query, requested_by=requested_by)
        if not ok or track is None:
            detail = f"\nError: {err}" if err else ""
            return (False, f'❌ | No results found for "{query}"!{detail}', None)

        state = self._state(guild.id)
        async with self._lock:
            if len(state.queue) >= self.queue_max:
                return (False, f"❌ | Queue is full ({self.queue_max} max).", None)

        vc = guild.voice_client
        try:
            if vc is None or not vc.is_connected():
                vc = await voice_channel.connect(self_deaf=True)
            elif int(getattr(vc.channel, "id", 0) or 0) != int(voice_channel.id) and not self.is_active(guild.id):
                await vc.move_to(voice_channel)
        except Exception as e:
            print(f"[MUSIC] action=connect result=error guild={int(guild.id)} error={str(e)[:180]}")
            return (False, f"❌ | Could not join your voice channel: {e}", None)

        async with self._lock:
            state.voice_client = vc
            # another play may have filled the queue while we were connecting
            if len(state.queue) >= self.queue_max:
                return (False, f"❌ | Queue is full ({self.queue_max} max).", None)
            state.queue.append(track)
            position = len(state.queue)
            kick = state.current is None and not (vc.is_playing() or vc.is_paused())
            if kick:
                self._cancel_idle_disconnect_locked(state)

        print(
            f"[MUSIC] action=queue result=ok guild={int(guild.id)} user={track.requested_by_id} "
            f"source={track.source} title={track.title[:80]}"
        )
        if kick:
            await self._play_next(state.guild_id)
            if not self.is_current(state.guild_id, track):
                return (False, f"❌ | Could not start playback for **{track.title}**.", None)
            return (True, f"🎵 | Now playing **{track.title}**", track)
        return (True, f"🎶 | Queued **{track.title}** (position {position})", track)

    async def skip(self, guild_id: int) -> tuple[bool, str]:
        async with self._lock:
            state = self._guilds.get(int(guild_id))
            vc = state.voice_client if state is not None else None
            if state is None or vc is None or (not vc.is_playing() and not vc.is_paused()):
                return (False, "❌ | No music is being played!")
            title = state.current.title if state.current is not None else "current track"
        # the after-callback queues the next track
        vc.stop()
        print(f"[MUSIC] action=skip result=ok guild={int(guild_id)}")
        return (True, f"⏭️ | Skipped **{title}**!")

    async def stop(self, guild_id: int) -> tuple[bool, str]:
        async with self._lock:
            state = self._guilds.pop(int(guild_id), None)
            if state is None:
                return (False, "❌ | No music is being played!")
            state.queue.clear()
            state.current = None
            self._cancel_idle_disconnect_locked(state)
            vc = state.voice_client
            state.voice_client = None

        if vc is not None:
            try:
                if vc.is_playing() or vc.is_paused():
                    vc.stop()
                if vc.is_connected():
                    await vc.disconnect(force=True)
            except Exception as e:
                print(f"[MUSIC] action=stop result=disconnect_error guild={int(guild_id)} error={str(e)[:180]}")

        print(f"[MUSIC] action=stop result=ok guild={int(guild_id)}")
        return (True, "🛑 | Music playback stopped and disconnected from voice channel!")

    async def queue_snapshot(self, guild_id: int, *, limit: int = MUSIC_QUEUE_PREVIEW) -> QueueSnapshot | None:
        lim = max(1, int(limit or MUSIC_QUEUE_PREVIEW))
        async with self._lock:
            state = self._guilds.get(int(guild_id))
            if state is None or state.current is None:
                return None
            rows = list(state.queue)
        return QueueSnapshot(current=state.current, upcoming=rows[:lim], remaining=max(0, len(rows) - lim))

    async def forget_guild(self, guild_id: int) -> None:
        async with self._lock:
            state = self._guilds.pop(int(guild_id), None)
            if state is None:
                return
            state.queue.clear()
            state.current = None
            self._cancel_idle_disconnect_locked(state)
        print(f"[Voice] dropped music queue for guild={int(guild_id)}")

    def _make_source(self, stream_url: str):
        source = discord.FFmpegPCMAudio(
            stream_url,
            before_options=FFMPEG_BEFORE_OPTIONS,
            options="-vn",
        )
        return discord.PCMVolumeTransformer(source, volume=DEFAULT_VOLUME)

    async def _play_next(self, guild_id: int) -> None:
        while True:
            async with self._lock:
                state = self._guilds.get(int(guild_id))
                if state is None:
                    return
                vc = state.voice_client
                if vc is None or not vc.is_connected():
                    state.current = None
                    return
                if vc.is_playing() or vc.is_paused():
                    return
                if not state.queue:
                    state.current = None
                    self._schedule_idle_disconnect_locked(state)
                    return
                track = state.queue.popleft()
                state.current = track
                self._cancel_idle_disconnect_locked(state)

            ok, stream_url, err = await self.resolve_stream_url(track)
            if not ok or not stream_url:
                print(
                    f"[MUSIC] action=play_next result=resolve_error "
                    f"guild={int(guild_id)} title={track.title[:80]} error={err or 'unknown'}"
                )
                await self._clear_current(guild_id, track.track_id)
                continue

            try:
                source = self._make_source(stream_url)
            except Exception as e:
                print(f"[MUSIC] action=play_next result=ffmpeg_error guild={int(guild_id)} error={str(e)[:180]}")
                await self._clear_current(guild_id, track.track_id)
                continue

            loop = self._loop
            if loop is None:
                loop = asyncio.get_running_loop()
                self._loop = loop

            def _after_playback(error: Exception | None, track_id: int = track.track_id):
                if loop.is_closed():
                    return
                loop.call_soon_threadsafe(asyncio.create_task, self._on_track_finished(guild_id, track_id, error))

            try:
                vc.play(source, after=_after_playback)
            except Exception as e:
                print(f"[MUSIC] action=play_next result=voice_play_error guild={int(guild_id)} error={str(e)[:180]}")
                await self._clear_current(guild_id, track.track_id)
                continue

            print(f"[MUSIC] action=play_next result=ok guild={int(guild_id)} title={track.title[:80]}")
            return

    async def _clear_current(self, guild_id: int, track_id: int) -> None:
        async with self._lock:
            state = self._guilds.get(int(guild_id))
            if state is not None and state.current is not None and state.current.track_id == track_id:
                state.current = None

    async def _on_track_finished(self, guild_id: int, track_id: int, error: Exception | None) -> None:
        if error is not None:
            print(f"[MUSIC] action=track_finished result=error guild={int(guild_id)} error={str(error)[:180]}")
        await self._clear_current(guild_id, track_id)
        await self._play_next(guild_id)

    def _cancel_idle_disconnect_locked(self, state: GuildPlayback) -> None:
        task = state.idle_task
        if task is not None and not task.done():
            task.cancel()
        state.idle_task = None

    def _schedule_idle_disconnect_locked(self, state: GuildPlayback) -> None:
        if self.idle_disconnect_seconds <= 0:
            return
        self._cancel_idle_disconnect_locked(state)
        state.idle_task = asyncio.create_task(self._idle_disconnect_after_delay(state.guild_id))

    async def _idle_disconnect_after_delay(self, guild_id: int) -> None:
        await asyncio.sleep(self.idle_disconnect_seconds)
        async with self._lock:
            state = self._guilds.get(int(guild_id))
            if state is None or state.queue or state.current is not None:
                return
            vc = state.voice_client
            if vc is not None and (vc.is_playing() or vc.is_paused()):
                return
            state.idle_task = None
            self._guilds.pop(int(guild_id), None)
        try:
            if vc is not None and vc.is_connected():
                await vc.disconnect(force=True)
            print(f"[MUSIC] action=idle_disconnect result=ok guild={int(guild_id)}")
        except Exception as e:
            print(f"[MUSIC] action=idle_disconnect result=error guild={int(guild_id)} error={str(e)[:180]}")
