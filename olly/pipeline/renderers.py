"""
Deterministic answer renderers.

Each entry pairs a detector (is this question one of our known shapes?)
with a template renderer that builds the answer straight from hotel and
room records. No renderer calls the language model; when the records do
not hold the answer they return the "no info" message.

RENDERERS is evaluated in order by dispatch(); the first detector that
fires owns the question.
"""
import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from olly.knowledge.records import HotelRecord, RoomRecord, format_number
from olly.knowledge.text import contains_phrase, normalize, starts_any_word, token_set
from olly.pipeline.messages import label, message

logger = logging.getLogger(__name__)

ROOM_MATCH_THRESHOLD = 3

# Words that appear in most room names and never identify a room on their own.
GENERIC_ROOM_WORDS = {
    "room", "rooms", "soba", "sobe", "sobu", "sobi", "the", "a", "an", "with",
    "apartment", "apartman", "unit", "jedinica", "and", "i", "of",
}

# ── Hotel core facts ─────────────────────────────────────────────────────
HOTEL_CORE_TOPICS: List[Tuple[Tuple[str, ...], Tuple[str, ...]]] = [
    (
        ("check in", "check out", "checkin", "checkout", "prijava", "prijave",
         "odjava", "odjave", "arrival time", "departure time"),
        ("check_in", "check_out"),
    ),
    (
        ("phone number", "telephone number", "your phone", "call you", "call the hotel",
         "broj telefona", "vaš telefon", "vas telefon", "nazvati vas", "nazvati hotel"),
        ("phone",),
    ),
    (
        ("email address", "e mail address", "your email", "your e mail", "email you",
         "e mail adresa", "email adresa", "vaš email", "vas email", "vaš e mail", "vas e mail"),
        ("email",),
    ),
    (
        ("your address", "hotel address", "the address", "hotel s address", "adresa hotela",
         "adresu hotela", "vaša adresa", "vasa adresa", "koja je adresa", "where are you",
         "where is the hotel", "where is your hotel", "hotel location", "gdje se nalazite", "gdje ste"),
        ("address", "maps_url"),
    ),
    (
        ("google maps", "on the map", "on a map", "map link", "map location", "google karte",
         "na karti", "lokacija na karti"),
        ("maps_url", "address"),
    ),
    (
        ("contact details", "contact information", "contact info", "contact you", "contact the hotel",
         "your contact", "reach you", "get in touch", "kontakt hotela", "kontakt podaci",
         "kontakt podatke", "kontaktirati vas", "kontaktirati hotel"),
        ("phone", "email", "address", "website"),
    ),
    (
        ("your website", "hotel website", "web site", "web stranic", "instagram", "facebook",
         "social media"),
        ("website", "instagram", "facebook"),
    ),
]

# ── Rooms by view ────────────────────────────────────────────────────────
# Bare "more"/"mora" collide with English, so only phrase and case forms.
SEA_GROUP = ("sea", "seaview", "seafront", "na more", "moru", "morem")
LANDMARK_GROUPS: List[Tuple[str, ...]] = [
    ("unesco",),
    ("palace", "palača", "palaca", "palaču", "palacu", "diocletian", "dioklecijan"),
    ("peristyle", "peristil"),
    ("cathedral", "katedral", "domnius", "sv duje"),
    SEA_GROUP,
    ("old town", "stari grad", "staru jezgru", "stara jezgra"),
    ("riva", "promenade"),
    ("courtyard", "dvorište", "dvoriste"),
]
VIEW_WORDS = ("view", "views", "overlook", "pogled", "vidi se", "vidik")
ROOM_WORDS = ("room", "rooms", "soba", "sobe", "sobu", "suite", "apartment", "apartman", "unit")

# ── Room types ───────────────────────────────────────────────────────────
ROOM_TYPE_PHRASES = (
    "room types", "types of rooms", "type of rooms", "types of room", "kinds of rooms",
    "kind of rooms", "what kind of room", "what rooms", "which rooms do you have",
    "what rooms do you have", "rooms do you have", "rooms do you offer", "list of rooms",
    "list your rooms", "accommodation options", "vrste soba", "tipovi soba", "koje sobe",
    "kakve sobe", "koje vrste soba", "popis soba",
)

# ── Amenities ────────────────────────────────────────────────────────────
AMENITY_KEYWORDS = (
    "amenit", "equipment", "equipped", "oprem", "sadržaj", "sadrzaj",
    "what s in the room", "what is in the room", "whats in the room",
    "what does the room have", "što ima u sobi", "sto ima u sobi",
)

# ── Bed types (whole tokens only: "parking" must never read as "king") ───
BED_TOKENS = {"king", "twin", "bed", "beds", "krevet", "kreveti", "kreveta", "krevetom"}

# ── Comparison ───────────────────────────────────────────────────────────
COMPARE_TOKENS = {"vs", "versus"}
COMPARE_STEMS = ("differ", "compar", "razlik", "uspored")
COMPARE_SEPARATORS = re.compile(
    r"\b(?:vs|versus|and|or|with|against|compared to|compared with|i|ili|naspram|sa|s|u odnosu na)\b"
)
COMPARE_FIELDS = ("room_type", "area", "capacity", "floor", "view", "beds")


@dataclass(frozen=True)
class AnswerRenderer:
    name: str
    detect: Callable[[str, Sequence[RoomRecord]], bool]
    render: Callable[[str, Optional[HotelRecord], Sequence[RoomRecord], str], str]


# ── Room resolution ──────────────────────────────────────────────────────
def room_match_score(room: RoomRecord, text: str) -> int:
    """How strongly a normalized text names `room` (name, slug, type)."""
    tokens = set(text.split())
    score = 0
    if room.name and contains_phrase(text, room.name):
        score += 4
    distinctive = (token_set(room.name) | token_set(room.slug)) - GENERIC_ROOM_WORDS
    score += 3 * len({t for t in distinctive if len(t) > 1} & tokens)
    score += len((token_set(room.room_type) - GENERIC_ROOM_WORDS) & tokens)
    return score


def resolve_room(text: str, rooms: Sequence[RoomRecord]) -> Optional[RoomRecord]:
    text = normalize(text)
    best, best_score = None, 0
    for room in rooms:
        score = room_match_score(room, text)
        if score > best_score:
            best, best_score = room, score
    if best_score >= ROOM_MATCH_THRESHOLD:
        return best
    return None


def _bullets(lines: List[str]) -> str:
    return "\n".join(f"- {line}" for line in lines)


def _beds_text(room: RoomRecord) -> str:
    return ", ".join(room.beds)


# ── Hotel core ───────────────────────────────────────────────────────────
def _core_fields_requested(text: str) -> List[str]:
    requested: List[str] = []
    for keywords, fields in HOTEL_CORE_TOPICS:
        if starts_any_word(text, keywords):
            requested.extend(f for f in fields if f not in requested)
    return requested


def is_hotel_core_question(text: str, rooms=()) -> bool:
    return bool(_core_fields_requested(text))


def render_hotel_core_answer(question: str, hotel: Optional[HotelRecord], rooms, lang: str) -> str:
    if hotel is None:
        return message("no_info", lang)
    facts = hotel.core_fields()
    lines = [
        f"{label(field, lang)}: {facts[field]}"
        for field in _core_fields_requested(normalize(question))
        if field in facts
    ]
    if not lines:
        return message("no_info", lang)
    return "\n".join(lines)


# ── Room types ───────────────────────────────────────────────────────────
def is_room_types_question(text: str, rooms=()) -> bool:
    return any(contains_phrase(text, p) for p in ROOM_TYPE_PHRASES)


def render_room_types_answer(question: str, hotel, rooms: Sequence[RoomRecord], lang: str) -> str:
    if not rooms:
        return message("no_info", lang)
    lines = []
    for room in rooms:
        line = room.label
        if room.room_type and normalize(room.room_type) != normalize(room.label):
            line += f" ({room.room_type})"
        if room.view:
            line += f" | {label('view', lang)}: {room.view}"
        if room.beds:
            line += f" | {label('beds', lang)}: {_beds_text(room)}"
        lines.append(line)
    return f"{label('our_rooms', lang)}\n{_bullets(lines)}"


# ── Rooms by view ────────────────────────────────────────────────────────
def _requested_landmarks(text: str) -> List[Tuple[str, ...]]:
    return [group for group in LANDMARK_GROUPS if starts_any_word(text, group)]


def is_view_question(text: str, rooms=()) -> bool:
    mentions_view = bool(starts_any_word(text, VIEW_WORDS))
    mentions_room = bool(starts_any_word(text, ROOM_WORDS))
    landmarks = _requested_landmarks(text)
    if mentions_view and (mentions_room or landmarks):
        return True
    # The sea is near everything, so it needs an explicit view word.
    return mentions_room and any(group is not SEA_GROUP for group in landmarks)


def render_rooms_by_view_answer(question: str, hotel, rooms: Sequence[RoomRecord], lang: str) -> str:
    if not rooms:
        return message("no_info", lang)
    groups = _requested_landmarks(normalize(question))
    if groups:
        keywords = [kw for group in groups for kw in group]
        matches = [r for r in rooms if r.view and starts_any_word(normalize(r.view), keywords)]
    else:
        matches = [r for r in rooms if r.view]
    if not matches:
        return message("no_view_match", lang)
    lines = [f"{r.label}: {r.view}" for r in matches]
    return f"{label('rooms_with_view', lang)}\n{_bullets(lines)}"


# ── Amenities ────────────────────────────────────────────────────────────
def is_amenities_question(text: str, rooms=()) -> bool:
    return bool(starts_any_word(text, AMENITY_KEYWORDS))


def render_amenities_answer(question: str, hotel, rooms: Sequence[RoomRecord], lang: str) -> str:
    room = resolve_room(question, rooms)
    if room is not None:
        if not room.amenities:
            return message("no_info", lang)
        return f"{label('amenities_in', lang, room=room.label)}\n{_bullets(list(room.amenities))}"

    seen, union = set(), []
    for r in rooms:
        for amenity in r.amenities:
            key = normalize(amenity)
            if key and key not in seen:
                seen.add(key)
                union.append(amenity)
    if not union:
        return message("no_info", lang)
    return f"{label('amenities_all', lang)}\n{_bullets(union)}"


# ── Bed types ────────────────────────────────────────────────────────────
def is_bed_question(text: str, rooms=()) -> bool:
    return bool(BED_TOKENS & set(text.split()))


def render_bed_types_answer(question: str, hotel, rooms: Sequence[RoomRecord], lang: str) -> str:
    room = resolve_room(question, rooms)
    selected = [room] if room is not None else list(rooms)
    if not any(r.beds for r in selected):
        return message("no_info", lang)
    lines = [
        f"{r.label}: {_beds_text(r) or label('not_specified', lang)}"
        for r in selected
    ]
    return f"{label('bed_setup', lang)}\n{_bullets(lines)}"


# ── Comparison ───────────────────────────────────────────────────────────
def is_comparison_question(text: str, rooms: Sequence[RoomRecord] = ()) -> bool:
    """A comparison word plus a room word or at least one recognizable room."""
    tokens = text.split()
    if not (COMPARE_TOKENS & set(tokens) or any(t.startswith(COMPARE_STEMS) for t in tokens)):
        return False
    if starts_any_word(text, ROOM_WORDS):
        return True
    return any(room_match_score(room, text) >= ROOM_MATCH_THRESHOLD for room in rooms)


def _comparable(room: RoomRecord, field: str):
    if field == "beds":
        return tuple(sorted(normalize(b) for b in room.beds))
    value = getattr(room, field)
    if isinstance(value, float):
        return value
    return normalize(value) or None


def _display(room: RoomRecord, field: str, lang: str) -> str:
    if field == "beds":
        value = _beds_text(room)
    elif field == "area":
        value = f"{format_number(room.area)} m²" if room.area is not None else ""
    elif field == "capacity":
        value = f"{format_number(room.capacity)} {label('persons', lang)}" if room.capacity is not None else ""
    else:
        value = getattr(room, field)
    return value or label("not_specified", lang)


def render_comparison_answer(question: str, hotel, rooms: Sequence[RoomRecord], lang: str) -> str:
    segments = [s.strip() for s in COMPARE_SEPARATORS.split(normalize(question)) if s.strip()]
    picked: List[RoomRecord] = []
    for segment in segments:
        room = resolve_room(segment, rooms)
        if room is not None and room not in picked:
            picked.append(room)
    if len(picked) < 2:
        return message("specify_rooms", lang)

    a, b = picked[0], picked[1]
    lines = []
    for field in COMPARE_FIELDS:
        va, vb = _comparable(a, field), _comparable(b, field)
        if (va or None) == (vb or None):
            continue
        lines.append(f"{label(field, lang)}: {_display(a, field, lang)} vs {_display(b, field, lang)}")

    if not lines:
        return message("no_differences", lang, a=a.label, b=b.label)
    return f"{label('differences', lang, a=a.label, b=b.label)}\n{_bullets(lines)}"


RENDERERS: List[AnswerRenderer] = [
    AnswerRenderer("room_comparison", is_comparison_question, render_comparison_answer),
    AnswerRenderer("hotel_core", is_hotel_core_question, render_hotel_core_answer),
    AnswerRenderer("rooms_by_view", is_view_question, render_rooms_by_view_answer),
    AnswerRenderer("bed_types", is_bed_question, render_bed_types_answer),
    AnswerRenderer("room_amenities", is_amenities_question, render_amenities_answer),
    AnswerRenderer("room_types", is_room_types_question, render_room_types_answer),
]


def dispatch(
    question: str,
    hotel: Optional[HotelRecord],
    rooms: Sequence[RoomRecord],
    lang: str,
    renderers: Sequence[AnswerRenderer] = RENDERERS,
) -> Optional[Tuple[str, str]]:
    """Return (renderer name, answer) for the first renderer that claims the question."""
    text = normalize(question)
    if not text:
        return None
    for renderer in renderers:
        if renderer.detect(text, rooms):
            logger.debug(f"Deterministic renderer '{renderer.name}' claimed the question")
            return renderer.name, renderer.render(question, hotel, rooms, lang)
    return None
