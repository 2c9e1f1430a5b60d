"""
Knowledge records and the mapping boundary from raw knowledge-source rows.

Rows arrive as {"id": ..., "fields": {...}} with field names that drifted
over time (English/Croatian labels, camelCase exports). FIELD_ALIASES
resolves them once into the fixed schema below; nothing past this module
sees alternate names.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

FIELD_ALIASES: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "hotel": {
        "slug": ("Slug", "slug", "Hotel Slug", "hotelSlug"),
        "name": ("Name", "Hotel Name", "name", "Naziv"),
        "description": ("Short Description", "Description", "description", "Opis"),
        "address": ("Address", "address", "Adresa"),
        "phone": ("Phone", "phone", "Telephone", "Telefon"),
        "email": ("Email", "E-mail", "email", "Mail"),
        "website": ("Website", "Web", "website", "URL"),
        "maps_url": ("Google Maps", "Maps", "Maps URL", "mapsUrl", "Karta"),
        "instagram": ("Instagram", "instagram"),
        "facebook": ("Facebook", "facebook"),
        "check_in": ("Check-in", "Check In", "checkIn", "CheckIn", "Prijava"),
        "check_out": ("Check-out", "Check Out", "checkOut", "CheckOut", "Odjava"),
        "active": ("Active", "active", "Aktivno", "Enabled"),
    },
    "service": {
        "name": ("Name", "Service", "Service Name", "name", "Naziv"),
        "categories": ("Category", "Categories", "category", "Kategorija"),
        "description": ("Description", "description", "Opis"),
        "hours": ("Hours", "Working Hours", "Opening Hours", "hours", "Radno vrijeme"),
        "prompt_hint": ("AI Prompt", "Prompt Hint", "AI Note", "promptHint"),
        "intents": ("Intents", "Intent", "intents", "Namjere"),
        "channels": ("Channels", "Channel", "channels", "Kanal"),
        "hotel_slugs": ("Hotel Slug", "Hotel", "Hotels", "hotelSlug", "Hotel (slug)"),
        "active": ("Active", "active", "Aktivno", "Enabled"),
    },
    "room": {
        "name": ("Name", "Unit", "Room Name", "name", "Naziv"),
        "room_type": ("Room Type", "Type", "roomType", "Tip sobe"),
        "slug": ("Slug", "slug", "Room Slug"),
        "description": ("Description", "description", "Opis"),
        "capacity": ("Capacity", "Max Guests", "capacity", "Kapacitet"),
        "floor": ("Floor", "floor", "Kat"),
        "area": ("Size", "Area", "Size (m2)", "area", "Površina"),
        "view": ("View", "view", "Pogled"),
        "beds": ("Bed Types", "Beds", "Bed Type", "beds", "Kreveti"),
        "amenities": ("Amenities", "amenities", "Oprema", "Sadržaji"),
        "prompt_hint": ("AI Prompt", "Prompt Hint", "AI Note", "promptHint"),
        "intents": ("Intents", "Intent", "intents", "Namjere"),
        "channels": ("Channels", "Channel", "channels", "Kanal"),
        "hotel_slugs": ("Hotel Slug", "Hotel", "Hotels", "hotelSlug", "Hotel (slug)"),
        "active": ("Active", "active", "Aktivno", "Enabled"),
    },
    "intent": {
        "intent": ("Intent", "Name", "intent", "Namjera"),
        "phrases": ("Example Phrases", "Phrases", "Examples", "phrases", "Primjeri"),
        "output_scope": ("Output Scope", "Scope", "outputScope"),
        "channels": ("Channels", "Channel", "channels", "Kanal"),
        "service_ids": ("Services", "Linked Services", "serviceIds"),
        "room_ids": ("Rooms", "Linked Rooms", "roomIds"),
        "active": ("Active", "active", "Aktivno", "Enabled"),
    },
    "output_rule": {
        "scope": ("Scope", "Output Scope", "scope"),
        "channels": ("Channels", "Channel", "channels", "Kanal"),
        "formatting": ("Formatting", "Format", "formatting"),
        "style": ("Style", "Tone", "style"),
        "example": ("Example Output", "Example", "example"),
        "priority": ("Priority", "priority", "Prioritet"),
        "active": ("Active", "active", "Aktivno", "Enabled"),
    },
}

_TRUTHY = {"true", "yes", "y", "1", "da", "active", "aktivno", "on", "checked"}


def pick(fields: Dict[str, Any], entity: str, name: str, default: Any = None) -> Any:
    """First non-empty value among the aliases of `name`."""
    for alias in FIELD_ALIASES[entity][name]:
        value = fields.get(alias)
        if value not in (None, "", [], {}):
            return value
    return default


def as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(as_text(v) for v in value if as_text(v))
    return str(value).strip()


def as_list(value: Any) -> List[str]:
    """
    Flatten a field into a list of strings: lists (nested or of lookup
    dicts), comma/newline separated strings, or scalars.
    """
    out: List[str] = []
    if value is None:
        return out
    if isinstance(value, dict):
        value = value.get("name") or value.get("slug") or value.get("id")
        return as_list(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        for item in value:
            out.extend(as_list(item))
        return out
    for part in str(value).replace("\n", ",").split(","):
        part = part.strip()
        if part:
            out.append(part)
    return out


def as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, (list, tuple)):
        return any(as_bool(v) for v in value)
    return str(value or "").strip().lower() in _TRUTHY


def as_number(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    if isinstance(value, (list, tuple)):
        return as_number(value[0]) if value else None
    try:
        return float(str(value).replace(",", ".").split()[0])
    except (ValueError, IndexError):
        return None


def _channels(fields: Dict[str, Any], entity: str) -> Tuple[str, ...]:
    return tuple(c.lower() for c in as_list(pick(fields, entity, "channels")))


def is_web_visible(channels: Iterable[str], web_channel: str = "web") -> bool:
    """Empty channel set means the record predates channels and is shown everywhere."""
    channels = tuple(channels)
    return not channels or web_channel.lower() in channels


@dataclass(frozen=True)
class HotelRecord:
    id: str
    slug: str
    name: str = ""
    description: str = ""
    address: str = ""
    phone: str = ""
    email: str = ""
    website: str = ""
    maps_url: str = ""
    instagram: str = ""
    facebook: str = ""
    check_in: str = ""
    check_out: str = ""
    active: bool = False

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "HotelRecord":
        f = row.get("fields") or {}
        return cls(
            id=str(row.get("id", "")),
            slug=as_text(pick(f, "hotel", "slug")),
            name=as_text(pick(f, "hotel", "name")),
            description=as_text(pick(f, "hotel", "description")),
            address=as_text(pick(f, "hotel", "address")),
            phone=as_text(pick(f, "hotel", "phone")),
            email=as_text(pick(f, "hotel", "email")),
            website=as_text(pick(f, "hotel", "website")),
            maps_url=as_text(pick(f, "hotel", "maps_url")),
            instagram=as_text(pick(f, "hotel", "instagram")),
            facebook=as_text(pick(f, "hotel", "facebook")),
            check_in=as_text(pick(f, "hotel", "check_in")),
            check_out=as_text(pick(f, "hotel", "check_out")),
            active=as_bool(pick(f, "hotel", "active", False)),
        )

    def core_fields(self) -> Dict[str, str]:
        """Non-empty hotel facts, in display order."""
        facts = {
            "name": self.name,
            "description": self.description,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "website": self.website,
            "maps_url": self.maps_url,
            "instagram": self.instagram,
            "facebook": self.facebook,
            "check_in": self.check_in,
            "check_out": self.check_out,
        }
        return {k: v for k, v in facts.items() if v}


@dataclass(frozen=True)
class ServiceRecord:
    id: str
    name: str
    categories: Tuple[str, ...] = ()
    description: str = ""
    hours: str = ""
    prompt_hint: str = ""
    intents: Tuple[str, ...] = ()
    channels: Tuple[str, ...] = ()
    hotel_slugs: Tuple[str, ...] = ()
    active: bool = False
    kind: str = field(default="service", init=False)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ServiceRecord":
        f = row.get("fields") or {}
        return cls(
            id=str(row.get("id", "")),
            name=as_text(pick(f, "service", "name")),
            categories=tuple(as_list(pick(f, "service", "categories"))),
            description=as_text(pick(f, "service", "description")),
            hours=as_text(pick(f, "service", "hours")),
            prompt_hint=as_text(pick(f, "service", "prompt_hint")),
            intents=tuple(as_list(pick(f, "service", "intents"))),
            channels=_channels(f, "service"),
            hotel_slugs=tuple(as_list(pick(f, "service", "hotel_slugs"))),
            active=as_bool(pick(f, "service", "active", False)),
        )

    def search_text(self) -> str:
        return " ".join(
            [self.name, " ".join(self.categories), self.description, self.hours, self.prompt_hint]
        )

    def to_context(self) -> Dict[str, Any]:
        data = {
            "type": "service",
            "name": self.name,
            "category": ", ".join(self.categories),
            "description": self.description,
            "hours": self.hours,
            "note": self.prompt_hint,
        }
        return {k: v for k, v in data.items() if v}


@dataclass(frozen=True)
class RoomRecord:
    id: str
    name: str
    room_type: str = ""
    slug: str = ""
    description: str = ""
    capacity: Optional[float] = None
    floor: str = ""
    area: Optional[float] = None
    view: str = ""
    beds: Tuple[str, ...] = ()
    amenities: Tuple[str, ...] = ()
    prompt_hint: str = ""
    intents: Tuple[str, ...] = ()
    channels: Tuple[str, ...] = ()
    hotel_slugs: Tuple[str, ...] = ()
    active: bool = False
    kind: str = field(default="room", init=False)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "RoomRecord":
        f = row.get("fields") or {}
        return cls(
            id=str(row.get("id", "")),
            name=as_text(pick(f, "room", "name")),
            room_type=as_text(pick(f, "room", "room_type")),
            slug=as_text(pick(f, "room", "slug")),
            description=as_text(pick(f, "room", "description")),
            capacity=as_number(pick(f, "room", "capacity")),
            floor=as_text(pick(f, "room", "floor")),
            area=as_number(pick(f, "room", "area")),
            view=as_text(pick(f, "room", "view")),
            beds=tuple(as_list(pick(f, "room", "beds"))),
            amenities=tuple(as_list(pick(f, "room", "amenities"))),
            prompt_hint=as_text(pick(f, "room", "prompt_hint")),
            intents=tuple(as_list(pick(f, "room", "intents"))),
            channels=_channels(f, "room"),
            hotel_slugs=tuple(as_list(pick(f, "room", "hotel_slugs"))),
            active=as_bool(pick(f, "room", "active", False)),
        )

    @property
    def label(self) -> str:
        return self.name or self.room_type or self.slug or self.id

    def search_text(self) -> str:
        return " ".join(
            [
                self.name,
                self.room_type,
                self.description,
                self.view,
                " ".join(self.beds),
                " ".join(self.amenities),
                self.prompt_hint,
            ]
        )

    def to_context(self) -> Dict[str, Any]:
        data = {
            "type": "room",
            "name": self.name,
            "room_type": self.room_type,
            "description": self.description,
            "capacity": _plain_number(self.capacity),
            "floor": self.floor,
            "size_m2": _plain_number(self.area),
            "view": self.view,
            "beds": list(self.beds),
            "amenities": list(self.amenities),
            "note": self.prompt_hint,
        }
        return {k: v for k, v in data.items() if v not in (None, "", [])}


@dataclass(frozen=True)
class IntentPattern:
    id: str
    intent: str
    phrases: str = ""
    output_scope: str = "General"
    channels: Tuple[str, ...] = ()
    service_ids: Tuple[str, ...] = ()
    room_ids: Tuple[str, ...] = ()
    active: bool = False

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "IntentPattern":
        f = row.get("fields") or {}
        return cls(
            id=str(row.get("id", "")),
            intent=as_text(pick(f, "intent", "intent")),
            phrases=as_text(pick(f, "intent", "phrases")),
            output_scope=as_text(pick(f, "intent", "output_scope")) or "General",
            channels=_channels(f, "intent"),
            service_ids=tuple(as_list(pick(f, "intent", "service_ids"))),
            room_ids=tuple(as_list(pick(f, "intent", "room_ids"))),
            active=as_bool(pick(f, "intent", "active", False)),
        )

    def match_text(self) -> str:
        return f"{self.intent} {self.phrases}"


@dataclass(frozen=True)
class OutputRule:
    id: str
    scope: str = "General"
    channels: Tuple[str, ...] = ()
    formatting: str = ""
    style: str = ""
    example: str = ""
    priority: float = 0.0
    active: bool = False

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "OutputRule":
        f = row.get("fields") or {}
        return cls(
            id=str(row.get("id", "")),
            scope=as_text(pick(f, "output_rule", "scope")) or "General",
            channels=_channels(f, "output_rule"),
            formatting=as_text(pick(f, "output_rule", "formatting")),
            style=as_text(pick(f, "output_rule", "style")),
            example=as_text(pick(f, "output_rule", "example")),
            priority=as_number(pick(f, "output_rule", "priority")) or 0.0,
            active=as_bool(pick(f, "output_rule", "active", False)),
        )


def _plain_number(value: Optional[float]) -> Optional[str]:
    if value is None:
        return None
    return str(int(value)) if float(value).is_integer() else str(value)


def format_number(value: Optional[float]) -> str:
    return _plain_number(value) or ""
