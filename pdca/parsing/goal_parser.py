"""
Goal extraction from chat text

Scans one chat turn (the user's message plus the assistant's reply) for a
goal the user could save. Extraction is rule-based and deterministic: every
field has an ordered list of rules, the first rule that matches wins, and
every field except the title falls back to a default when nothing matches.

Fields and their fallbacks:
- title: labeled statement ("目标：...", "goal: ...") or the opening sentence.
  No title means no goal, and extraction returns None.
- description: labeled text or the first mid-sized paragraph, else None
- level: keyword classes, broadest horizon first, else MONTHLY
- start/end dates: labeled dates, then any dates found, then today + horizon
- metrics: labeled metrics plus bullet lines that read like success criteria
- priority: "优先级：8" / "priority: high", else 5

The text is usually Chinese, so every rule family carries the Chinese label
forms and their English equivalents.

Usage:
    from pdca.parsing import extract_goal_from_text

    goal = extract_goal_from_text("我的目标是:学习编程", "很好的目标！")
    if goal:
        print(goal.title, goal.level, goal.end_date)
"""

from datetime import date
from typing import Callable, List, Optional, Pattern, Sequence, Tuple
import logging
import re

from ..core.dates import (
    add_horizon,
    current_date_iso,
    future_date_iso,
    horizon_days,
    parse_iso_date,
    to_iso_midnight,
    utc_today,
)
from ..core.models import GoalLevel, GoalStatus, Metric, StructuredGoal


logger = logging.getLogger(__name__)


# =============================================================================
# Rule tables
# =============================================================================

# Text following a label, up to a quote, newline or full stop
_LABEL_VALUE = r"""\s*["']?([^"'\n.。]+)["']?"""

# Noun labels need a colon so "很好的目标！" is not read as "目标 = ！..."
TITLE_PATTERNS: List[Pattern] = [
    re.compile(r"目标[:：]" + _LABEL_VALUE),
    re.compile(r"(?<![A-Za-z0-9])goal[:：]" + _LABEL_VALUE, re.IGNORECASE),
    re.compile(r"标题[:：]" + _LABEL_VALUE),
    re.compile(r"(?<![A-Za-z0-9])title[:：]" + _LABEL_VALUE, re.IGNORECASE),
    re.compile(r"我想要[:：]?" + _LABEL_VALUE),
    re.compile(r"(?<![A-Za-z0-9])I want(?: to)?[:：]?" + _LABEL_VALUE, re.IGNORECASE),
    re.compile(r"我的目标是[:：]?" + _LABEL_VALUE),
    re.compile(r"(?<![A-Za-z0-9])my goal is(?: to)?[:：]?" + _LABEL_VALUE, re.IGNORECASE),
    re.compile(r"计划[:：]" + _LABEL_VALUE),
    re.compile(r"(?<![A-Za-z0-9])plan[:：]" + _LABEL_VALUE, re.IGNORECASE),
]

# Opening sentence of the text, used when nothing is labeled
FIRST_SENTENCE_PATTERN = re.compile(r"([^.。!！?？\n]{5,50})[.。!！?？]")

_DESCRIPTION_VALUE = r"""\s*["']?([^"'\n]{10,500})["']?"""

DESCRIPTION_PATTERNS: List[Pattern] = [
    re.compile(r"描述[:：]?" + _DESCRIPTION_VALUE),
    re.compile(r"(?<![A-Za-z0-9])description[:：]" + _DESCRIPTION_VALUE, re.IGNORECASE),
    re.compile(r"详情[:：]?" + _DESCRIPTION_VALUE),
    re.compile(r"(?<![A-Za-z0-9])details[:：]" + _DESCRIPTION_VALUE, re.IGNORECASE),
    re.compile(r"具体内容[:：]?" + _DESCRIPTION_VALUE),
    re.compile(r"(?<![A-Za-z0-9])specifically[:：]" + _DESCRIPTION_VALUE, re.IGNORECASE),
]

# A paragraph holding one of these is the title line, not a description
TITLE_MARKERS = ("目标:", "目标：", "标题:", "标题：", "goal:", "title:")

DESCRIPTION_MIN_LENGTH = 30
DESCRIPTION_MAX_LENGTH = 500


# English words are bounded by ASCII letters and digits only. CJK characters
# count as word characters for a plain word boundary, so "今年annual" or
# "我的goal:" would never match one.
def _english_words(*phrases: str) -> str:
    return r"(?<![A-Za-z0-9])(?:" + "|".join(phrases) + r")(?![A-Za-z0-9])"


# Broadest horizon first: a "3-5年愿景" must not be read as a weekly goal
LEVEL_PATTERNS: List[Tuple[Pattern, GoalLevel]] = [
    (re.compile(
        r"愿景|远景|长期|3-5年|3到5年|五年|"
        + _english_words(r"vision", r"long[- ]term", r"3-5 years", r"five years"),
        re.IGNORECASE), GoalLevel.VISION),
    (re.compile(
        r"年度|一年|1年|今年|明年|年目标|"
        + _english_words(r"annual(?:ly)?", r"yearly", r"this year", r"next year", r"one year"),
        re.IGNORECASE), GoalLevel.YEARLY),
    (re.compile(
        r"季度|三个月|3个月|一季度|本季度|下季度|"
        + _english_words(r"quarter(?:ly|s)?", r"three months", r"3 months"),
        re.IGNORECASE), GoalLevel.QUARTERLY),
    (re.compile(
        r"月度|一个月|1个月|本月|下月|"
        + _english_words(r"month(?:ly)?", r"this month", r"next month"),
        re.IGNORECASE), GoalLevel.MONTHLY),
    (re.compile(
        r"周|一周|1周|本周|下周|七天|7天|"
        + _english_words(r"week(?:ly|s)?", r"seven days", r"7 days"),
        re.IGNORECASE), GoalLevel.WEEKLY),
]

DEFAULT_LEVEL = GoalLevel.MONTHLY

# 2025-03-01, 2025/3/1, 2025年3月1日
_DATE_TOKEN = r"([0-9]{4}[-/年][0-9]{1,2}[-/月][0-9]{1,2}日?)"
DATE_PATTERN = re.compile(_DATE_TOKEN)

START_DATE_PATTERNS: List[Pattern] = [
    re.compile(r"开始(?:[时日期]间|日期)[:：]?\s*" + _DATE_TOKEN),
    re.compile(r"(?<![A-Za-z0-9])start(?:ing)? date[:：]?\s*" + _DATE_TOKEN, re.IGNORECASE),
]

# End-date labels are tried before deadline labels
END_DATE_PATTERNS: List[Pattern] = [
    re.compile(r"结束(?:[时日期]间|日期)[:：]?\s*" + _DATE_TOKEN),
    re.compile(r"(?<![A-Za-z0-9])end date[:：]?\s*" + _DATE_TOKEN, re.IGNORECASE),
    re.compile(r"截止(?:[时日期]间|日期)[:：]?\s*" + _DATE_TOKEN),
    re.compile(r"(?<![A-Za-z0-9])(?:deadline|due date)[:：]?\s*" + _DATE_TOKEN, re.IGNORECASE),
]

METRIC_PATTERNS: List[Pattern] = [
    re.compile(r"指标[:：]?" + _LABEL_VALUE),
    re.compile(r"(?<![A-Za-z0-9])(?:indicator|metric)s?[:：]" + _LABEL_VALUE, re.IGNORECASE),
    re.compile(r"衡量标准[:：]?" + _LABEL_VALUE),
    re.compile(r"(?<![A-Za-z0-9])measures? of success[:：]" + _LABEL_VALUE, re.IGNORECASE),
    re.compile(r"成功标准[:：]?" + _LABEL_VALUE),
    re.compile(r"(?<![A-Za-z0-9])success criteri(?:on|a)[:：]" + _LABEL_VALUE, re.IGNORECASE),
]

BULLET_ITEM_PATTERN = re.compile(r"[•·\-*]\s*([^•·\-*\n]{5,100})")

# A bullet only counts as a metric if it talks about measuring or achieving
METRIC_KEYWORDS = (
    "指标", "衡量", "标准", "达到", "完成",
    "indicator", "metric", "measure", "standard", "achieve", "complete",
)

PRIORITY_PATTERNS: List[Pattern] = [
    re.compile(r"优先级[:：]?\s*([0-9]+)"),
    re.compile(r"(?<![A-Za-z0-9])priority[:：]?\s*([0-9]+)", re.IGNORECASE),
    re.compile(r"优先级[:：]?\s*(高|中|低)"),
    re.compile(r"(?<![A-Za-z0-9])priority[:：]?\s*(high|medium|low)(?![A-Za-z0-9])", re.IGNORECASE),
    re.compile(r"重要[性度][:：]?\s*([0-9]+)"),
    re.compile(r"(?<![A-Za-z0-9])importance[:：]?\s*([0-9]+)", re.IGNORECASE),
    re.compile(r"重要[性度][:：]?\s*(高|中|低)"),
    re.compile(r"(?<![A-Za-z0-9])importance[:：]?\s*(high|medium|low)(?![A-Za-z0-9])", re.IGNORECASE),
]

PRIORITY_WORDS = {
    "高": 8, "high": 8,
    "中": 5, "medium": 5,
    "低": 2, "low": 2,
}

DEFAULT_PRIORITY = 5
MIN_PRIORITY = 1
MAX_PRIORITY = 10


# =============================================================================
# Helpers
# =============================================================================

def _first_capture(patterns: Sequence[Pattern], text: str) -> Optional[str]:
    """Return the trimmed first group of the first pattern that matches with content."""
    for pattern in patterns:
        match = pattern.search(text)
        if match and match.group(1):
            value = match.group(1).strip()
            if value:
                return value
    return None


def _pad_start(value: str, width: int, fill: str) -> str:
    """Left-pad ``value`` to ``width`` chars by repeating ``fill`` (JS padStart)."""
    missing = width - len(value)
    if missing <= 0 or not fill:
        return value
    repeated = fill * (missing // len(fill) + 1)
    return repeated[:missing] + value


# =============================================================================
# Sub-extractors
# =============================================================================

def extract_title(text: str) -> Optional[str]:
    """
    Find the goal title.

    Labeled statements win over the opening-sentence fallback because a
    label is unambiguous while sentence splitting is noisy.

    Args:
        text: Combined chat text

    Returns:
        Title text, or None when the text proposes no goal
    """
    title = _first_capture(TITLE_PATTERNS, text)
    if title:
        return title

    match = FIRST_SENTENCE_PATTERN.match(text)
    if match and match.group(1).strip():
        return match.group(1).strip()

    return None


def extract_description(text: str) -> Optional[str]:
    """Find a labeled description, else the first paragraph of a useful size."""
    description = _first_capture(DESCRIPTION_PATTERNS, text)
    if description:
        return description

    for paragraph in re.split(r"\n+", text):
        if not DESCRIPTION_MIN_LENGTH < len(paragraph) < DESCRIPTION_MAX_LENGTH:
            continue
        lowered = paragraph.lower()
        if any(marker in lowered for marker in TITLE_MARKERS):
            continue
        return paragraph.strip()

    return None


def extract_level(text: str) -> GoalLevel:
    """Classify the goal's time horizon. Defaults to MONTHLY."""
    for pattern, level in LEVEL_PATTERNS:
        if pattern.search(text):
            return level
    return DEFAULT_LEVEL


def normalize_date(raw: str) -> str:
    """
    Rewrite a matched date token as a midnight-UTC ISO timestamp.

    "2025年3月1日" and "2025/3/1" both become "2025-03-01T00:00:00.000Z".
    The year is left-padded with "20" when shorter than four digits. A
    token that does not split into year, month and day is returned as-is.
    """
    normalized = (
        raw.replace("年", "-")
        .replace("月", "-")
        .replace("日", "")
        .replace("/", "-")
    )
    parts = normalized.split("-")
    if len(parts) != 3:
        return raw

    year = _pad_start(parts[0], 4, "20")
    month = _pad_start(parts[1], 2, "0")
    day = _pad_start(parts[2], 2, "0")
    return f"{year}-{month}-{day}T00:00:00.000Z"


def find_date_tokens(text: str) -> List[str]:
    """All date-like tokens in order of appearance."""
    return [match.group(0) for match in DATE_PATTERN.finditer(text)]


def extract_dates(text: str, level: Optional[GoalLevel] = None,
                  today: Optional[date] = None) -> Tuple[str, str]:
    """
    Resolve the goal's start and end dates.

    Resolution order:
    1. Labeled start and end dates, when both are present
    2. Dates found anywhere: a single date is the end date, otherwise the
       first is the start and the last is the end
    3. Nothing found: today through today + the level's horizon
    Then gaps are filled: a lone start date gets the level's horizon added,
    a lone end date starts today.

    Args:
        text: Combined chat text
        level: Goal level used for horizons (extracted from text if None)
        today: Override for the current UTC date

    Returns:
        Tuple of (start_date, end_date) strings
    """
    if level is None:
        level = extract_level(text)

    candidates = find_date_tokens(text)

    start_date = None
    end_date = None

    explicit_start = _first_capture(START_DATE_PATTERNS, text)
    if explicit_start:
        start_date = normalize_date(explicit_start)

    explicit_end = _first_capture(END_DATE_PATTERNS, text)
    if explicit_end:
        end_date = normalize_date(explicit_end)

    if (not start_date or not end_date) and candidates:
        if len(candidates) == 1:
            end_date = normalize_date(candidates[0])
        else:
            start_date = normalize_date(candidates[0])
            end_date = normalize_date(candidates[-1])

    if not start_date and not end_date:
        start_date = current_date_iso(today)
        end_date = future_date_iso(horizon_days(level), today)
    elif start_date and not end_date:
        start_day = parse_iso_date(start_date)
        if start_day is None:
            logger.debug(f"Unparseable start date {start_date!r}, using default horizon")
            end_date = future_date_iso(horizon_days(level), today)
        else:
            end_date = to_iso_midnight(add_horizon(start_day, level))
    elif end_date and not start_date:
        start_date = current_date_iso(today)

    return start_date, end_date


def extract_metrics(text: str) -> List[Metric]:
    """
    Collect success metrics.

    Labeled metrics come first, then bullet lines mentioning a metric
    keyword. A line caught by both passes appears twice.
    """
    metrics: List[Metric] = []

    for pattern in METRIC_PATTERNS:
        for match in pattern.finditer(text):
            value = match.group(1).strip() if match.group(1) else ""
            if value:
                metrics.append(Metric(description=value))

    for match in BULLET_ITEM_PATTERN.finditer(text):
        body = match.group(1)
        lowered = body.lower()
        if any(keyword in lowered for keyword in METRIC_KEYWORDS):
            metrics.append(Metric(description=body.strip()))

    return metrics


def extract_priority(text: str) -> int:
    """Read an explicit priority (1-10 or high/medium/low). Defaults to 5."""
    for pattern in PRIORITY_PATTERNS:
        match = pattern.search(text)
        if not match or not match.group(1):
            continue

        value = match.group(1).strip()
        if value.isdigit():
            # Anything past two significant digits clamps to the max; int()
            # refuses strings over 4300 digits.
            significant = value.lstrip("0")
            if len(significant) > 2:
                return MAX_PRIORITY
            return min(max(int(significant or "0"), MIN_PRIORITY), MAX_PRIORITY)

        score = PRIORITY_WORDS.get(value.lower())
        if score is not None:
            return score

    return DEFAULT_PRIORITY


# =============================================================================
# Entry points
# =============================================================================

def combine_turn(user_input: str, assistant_reply: str) -> str:
    """Join a chat turn into the single text all sub-extractors read."""
    return f"{user_input or ''}\n{assistant_reply or ''}"


def extract_goal_from_text(user_input: str, assistant_reply: str,
                           today: Optional[date] = None) -> Optional[StructuredGoal]:
    """
    Extract a proposed goal from one chat turn.

    Args:
        user_input: The user's latest message
        assistant_reply: The assistant's reply to it
        today: Override for the current UTC date

    Returns:
        StructuredGoal, or None when the turn contains no goal title
    """
    combined = combine_turn(user_input, assistant_reply)

    title = extract_title(combined)
    if not title:
        logger.debug("No goal title found in chat turn")
        return None

    level = extract_level(combined)
    start_date, end_date = extract_dates(combined, level=level, today=today)

    return StructuredGoal(
        title=title,
        description=extract_description(combined),
        level=level,
        status=GoalStatus.ACTIVE,
        start_date=start_date,
        end_date=end_date,
        metrics=extract_metrics(combined),
        resources=[],
        priority=extract_priority(combined),
        weight=1.0,
    )


class GoalExtractor:
    """
    Stateless goal extractor with an injectable clock.

    Holds nothing between calls, so one instance can be shared by any
    number of request handlers.
    """

    def __init__(self, clock: Optional[Callable[[], date]] = None):
        """
        Args:
            clock: Callable returning the current UTC date (defaults to utc_today)
        """
        self.clock = clock or utc_today

    def extract(self, user_input: str, assistant_reply: str) -> Optional[StructuredGoal]:
        """Extract a goal from one chat turn. See extract_goal_from_text()."""
        return extract_goal_from_text(user_input, assistant_reply, today=self.clock())
