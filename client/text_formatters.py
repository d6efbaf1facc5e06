from datetime import datetime
from typing import List, Optional

from core.config import LOCAL_TZ
from core.models import ChatMessage, EpisodeInfo, HistoryEntry, Quest, SeasonInfo


def format_countdown(seconds: int) -> str:
    """Секунды в вид m:ss."""
    seconds = max(0, int(seconds))
    minutes, secs = divmod(seconds, 60)
    return f"{minutes}:{secs:02d}"


def format_episode_text(episode: Optional[EpisodeInfo]) -> str:
    if episode is None:
        return "Episode —"
    text = f"Episode {episode.number} · {format_countdown(episode.seconds_remaining)}"
    if episode.is_frozen:
        text += " (frozen)"
    elif not episode.is_active:
        text += " (ended)"
    return text


def format_season_text(season: Optional[SeasonInfo]) -> str:
    return f"Season: {season.name}" if season else "Season: —"


def format_quest_line(quest: Quest) -> str:
    mark = " ✓" if quest.completed else ""
    return f"{quest.description} {quest.progress}/{quest.target}{mark}"


def format_quests_text(quests: List[Quest]) -> str:
    if not quests:
        return "Нет активных квестов."
    return "\n".join(format_quest_line(q) for q in quests)


def format_chat_text(messages: List[ChatMessage], limit: Optional[int] = None) -> str:
    """Сообщения в порядке сервера, новые внизу."""
    if limit is not None:
        messages = messages[-limit:] if limit > 0 else []
    return "\n".join(f"{m.author}: {m.text}" for m in messages)


def format_cooldown_text(remaining: int) -> str:
    return f"Wait {remaining}s" if remaining > 0 else "Ready!"


def format_history_text(entries: List[HistoryEntry]) -> str:
    if not entries:
        return "No history available"
    lines = ["Previous Episodes:", ""]
    for entry in entries:
        date_str = datetime.fromtimestamp(entry.timestamp, tz=LOCAL_TZ).strftime('%d.%m.%Y')
        lines.append(f"Episode {entry.episode_number} - {date_str}")
    return "\n".join(lines)
