"""Smart natural language parser for smart-todo.

Turns a free-form sentence such as "Call John tomorrow 9am urgent" into a
title, a due date, a priority and a reminder flag. Every table below is
scanned in declaration order and the first match wins, so entries must
not be reordered or deduplicated.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Callable, Optional, Tuple

from .task import Task, Priority
from .utils.datetime import Clock, now_local

logger = logging.getLogger(__name__)


DEFAULT_DUE_TIME = time(9, 0)

WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def next_weekday(today: date, weekday: int) -> date:
    """Next occurrence of ``weekday`` (0=Monday) strictly after ``today``."""
    days_ahead = (weekday - today.weekday()) % 7
    if days_ahead == 0:
        days_ahead = 7
    return today + timedelta(days=days_ahead)


def _weekday_resolver(weekday: int) -> Callable[[date], date]:
    return lambda today: next_weekday(today, weekday)


DATE_KEYWORDS: Tuple[Tuple[str, Callable[[date], date]], ...] = (
    ("today", lambda today: today),
    ("tomorrow", lambda today: today + timedelta(days=1)),
) + tuple(
    (f"next {name}", _weekday_resolver(index)) for index, name in enumerate(WEEKDAY_NAMES)
) + tuple(
    (name, _weekday_resolver(index)) for index, name in enumerate(WEEKDAY_NAMES)
)

TIME_PATTERNS = (
    re.compile(r"(\d{1,2}):(\d{2})\s*(am|pm)", re.IGNORECASE),
    re.compile(r"(\d{1,2})\s*(am|pm)", re.IGNORECASE),
    re.compile(r"(\d{1,2}):(\d{2})"),
)

PRIORITY_KEYWORDS: Tuple[Tuple[str, Priority], ...] = (
    ("urgent", Priority.HIGH),
    ("important", Priority.HIGH),
    ("high priority", Priority.HIGH),
    ("asap", Priority.HIGH),
    ("low priority", Priority.LOW),
    ("later", Priority.LOW),
    ("sometime", Priority.LOW),
)

REMINDER_PATTERN = re.compile(r"remind me|reminder", re.IGNORECASE)


@dataclass
class ParsedTask:
    """Result of parsing one line of user input."""
    title: str
    due_date: Optional[datetime] = None
    priority: Priority = Priority.MEDIUM
    has_reminder: bool = False


def _to_clock_time(hour: str, minute: str, meridiem: Optional[str] = None) -> Optional[time]:
    """Build a time from regex captures, applying the am/pm adjustment."""
    try:
        hour_value = int(hour)
        minute_value = int(minute)
        if meridiem:
            meridiem = meridiem.lower()
            if meridiem == "pm" and hour_value != 12:
                hour_value += 12
            elif meridiem == "am" and hour_value == 12:
                hour_value = 0
        return time(hour_value, minute_value)
    except (TypeError, ValueError):
        return None


class SmartDateParser:
    """Extracts a due date and time from lower-cased text."""

    def __init__(self, default_time: time = DEFAULT_DUE_TIME):
        self.date_keywords = DATE_KEYWORDS
        self.time_patterns = TIME_PATTERNS
        self.default_time = default_time

    def extract_date(self, text: str, today: date) -> Optional[date]:
        """Resolve the first date keyword contained in ``text``."""
        for keyword, resolve in self.date_keywords:
            if keyword in text:
                return resolve(today)
        return None

    def extract_time(self, text: str) -> Optional[time]:
        """Parse the first time pattern found in ``text``.

        Only the first pattern that matches is considered; if its captures
        do not form a valid clock time, no time is returned.
        """
        for pattern in self.time_patterns:
            match = pattern.search(text)
            if match:
                return self._parse_time(match)
        return None

    def _parse_time(self, match: re.Match) -> Optional[time]:
        groups = match.groups()
        if len(groups) == 3:
            return _to_clock_time(groups[0], groups[1], groups[2])
        if groups[1].lower() in ("am", "pm"):
            return _to_clock_time(groups[0], "0", groups[1])
        return _to_clock_time(groups[0], groups[1])

    def extract(self, text: str, now: datetime) -> Optional[datetime]:
        """Combine date and time; a date keyword is required.

        A time on its own does not produce a due date. A date without a
        time defaults to ``default_time``.
        """
        extracted_date = self.extract_date(text, now.date())
        if extracted_date is None:
            return None

        extracted_time = self.extract_time(text)
        if extracted_time is None:
            extracted_time = self.default_time
        return datetime.combine(extracted_date, extracted_time)

    def strip_date_time(self, title: str) -> str:
        """Remove every date keyword and every time expression from ``title``."""
        for keyword, _ in self.date_keywords:
            title = re.sub(re.escape(keyword), "", title, flags=re.IGNORECASE)
        for pattern in self.time_patterns:
            title = pattern.sub("", title)
        return title


class KeywordExtractor:
    """Detects priority and reminder cues in a title."""

    def __init__(self):
        self.priority_keywords = PRIORITY_KEYWORDS
        self.reminder_pattern = REMINDER_PATTERN

    def extract_reminder(self, title: str) -> Tuple[bool, str]:
        """Detect "remind me"/"reminder" and remove it from the title."""
        if not self.reminder_pattern.search(title):
            return False, title
        return True, self.reminder_pattern.sub("", title).strip()

    def extract_priority(self, title: str) -> Tuple[Priority, str]:
        """Return the priority of the first keyword found, MEDIUM otherwise.

        Only the matched keyword is removed from the title.
        """
        lowered = title.lower()
        for keyword, priority in self.priority_keywords:
            if keyword in lowered:
                stripped = re.sub(re.escape(keyword), "", title, flags=re.IGNORECASE)
                return priority, stripped.strip()
        return Priority.MEDIUM, title

    def strip_all_priority_keywords(self, title: str) -> str:
        for keyword, _ in self.priority_keywords:
            title = re.sub(re.escape(keyword), "", title, flags=re.IGNORECASE)
        return title


def clean_title(title: str) -> str:
    """Collapse whitespace and trim surrounding whitespace and commas."""
    title = re.sub(r"\s+", " ", title)
    title = re.sub(r"^[,\s]+", "", title)
    title = re.sub(r"[,\s]+$", "", title)
    return title.strip()


class SmartTaskParser:
    """Parses free-form task input into a ParsedTask."""

    def __init__(self, clock: Optional[Clock] = None, default_time: time = DEFAULT_DUE_TIME):
        self.clock = clock or now_local
        self.date_parser = SmartDateParser(default_time)
        self.keywords = KeywordExtractor()

    def parse(self, input_text: str, now: Optional[datetime] = None) -> ParsedTask:
        """Parse natural language input into structured task data.

        Never raises: anything unexpected degrades to a task titled with
        the raw input.
        """
        input_text = input_text or ""
        try:
            return self._parse(input_text, now or self.clock())
        except Exception as e:
            logger.warning(f"Parsing failed for {input_text!r}: {e}")
            return ParsedTask(title=input_text)

    def _parse(self, input_text: str, now: datetime) -> ParsedTask:
        title = input_text.strip()

        has_reminder, title = self.keywords.extract_reminder(title)
        priority, title = self.keywords.extract_priority(title)

        due_date = self.date_parser.extract(title.lower(), now)
        if due_date is not None:
            # Compound phrasing ("next friday 5pm, urgent") gets a full sweep.
            title = self.date_parser.strip_date_time(title)
            title = self.keywords.strip_all_priority_keywords(title)

        title = clean_title(title)
        if not title:
            title = input_text

        logger.debug(
            f"Parsed {input_text!r} -> title={title!r} due={due_date} "
            f"priority={priority.value} reminder={has_reminder}"
        )
        return ParsedTask(
            title=title,
            due_date=due_date,
            priority=priority,
            has_reminder=has_reminder,
        )


class TaskBuilder:
    """Builds Task objects from parsed task data."""

    def build(self, parsed: ParsedTask, description: str = "",
              category: Optional[str] = None, now: Optional[datetime] = None) -> Task:
        """Build a new, unsaved Task from parsed task data."""
        return Task(
            title=parsed.title,
            description=description,
            priority=parsed.priority,
            due_date=parsed.due_date,
            has_reminder=parsed.has_reminder and parsed.due_date is not None,
            created_at=now or now_local(),
            category=category,
        )

    def apply(self, task: Task, parsed: ParsedTask) -> Task:
        """Return a copy of ``task`` updated with the parsed fields.

        The priority is always taken from the parse, so an edit without a
        priority keyword resets it to MEDIUM.
        """
        return task.copy(
            title=parsed.title,
            priority=parsed.priority,
            due_date=parsed.due_date,
            has_reminder=parsed.has_reminder and parsed.due_date is not None,
        )


def parse_task_input(input_text: str, now: Optional[datetime] = None) -> ParsedTask:
    """Main function to parse task input."""
    return SmartTaskParser().parse(input_text, now)
