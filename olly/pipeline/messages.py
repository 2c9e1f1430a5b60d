"""Fixed user-facing messages and renderer labels, in English and Croatian."""
import logging
from typing import Optional

from langdetect import DetectorFactory, LangDetectException, detect

from olly.config import settings

logger = logging.getLogger(__name__)

DetectorFactory.seed = 0

SUPPORTED_LANGUAGES = ("en", "hr")
_SOUTH_SLAVIC = {"hr", "bs", "sr", "sl", "sh", "me"}

MESSAGES = {
    "no_info": {
        "en": "I don't have verified information about that. Please contact our reception and they will be happy to help.",
        "hr": "Nemam provjerenu informaciju o tome. Molimo kontaktirajte našu recepciju, rado će vam pomoći.",
    },
    "rate_limited": {
        "en": "You're sending messages a bit too quickly. Please wait a few seconds and try again.",
        "hr": "Šaljete poruke malo prebrzo. Molimo pričekajte nekoliko sekundi i pokušajte ponovno.",
    },
    "no_price": {
        "en": "I can't confirm prices here. Please contact our reception for current rates and availability.",
        "hr": "Ovdje ne mogu potvrditi cijene. Molimo kontaktirajte recepciju za aktualne cijene i dostupnost.",
    },
    "specify_rooms": {
        "en": "Which two rooms would you like to compare? Please write both room names, for example \"Deluxe vs Superior\".",
        "hr": "Koje dvije sobe želite usporediti? Molimo navedite oba naziva soba, npr. \"Deluxe vs Superior\".",
    },
    "server_error": {
        "en": "Sorry, something went wrong on our side. Please try again in a moment or contact our reception.",
        "hr": "Ispričavamo se, došlo je do pogreške. Pokušajte ponovno za trenutak ili kontaktirajte recepciju.",
    },
    "no_view_match": {
        "en": "None of our rooms list a view matching your question. Please contact our reception for details.",
        "hr": "Nijedna naša soba nema naveden takav pogled. Za detalje kontaktirajte recepciju.",
    },
    "no_differences": {
        "en": "According to our data, {a} and {b} have the same type, size, capacity, floor, view and beds.",
        "hr": "Prema našim podacima, {a} i {b} imaju isti tip, veličinu, kapacitet, kat, pogled i krevete.",
    },
}

LABELS = {
    "name": {"en": "Hotel", "hr": "Hotel"},
    "address": {"en": "Address", "hr": "Adresa"},
    "phone": {"en": "Phone", "hr": "Telefon"},
    "email": {"en": "Email", "hr": "E-mail"},
    "website": {"en": "Website", "hr": "Web"},
    "maps_url": {"en": "Google Maps", "hr": "Google karte"},
    "instagram": {"en": "Instagram", "hr": "Instagram"},
    "facebook": {"en": "Facebook", "hr": "Facebook"},
    "check_in": {"en": "Check-in", "hr": "Prijava (check-in)"},
    "check_out": {"en": "Check-out", "hr": "Odjava (check-out)"},
    "room_type": {"en": "Type", "hr": "Tip"},
    "area": {"en": "Size", "hr": "Veličina"},
    "capacity": {"en": "Capacity", "hr": "Kapacitet"},
    "floor": {"en": "Floor", "hr": "Kat"},
    "view": {"en": "View", "hr": "Pogled"},
    "beds": {"en": "Beds", "hr": "Kreveti"},
    "amenities": {"en": "Amenities", "hr": "Oprema"},
    "not_specified": {"en": "not specified", "hr": "nije navedeno"},
    "our_rooms": {"en": "Our rooms:", "hr": "Naše sobe:"},
    "rooms_with_view": {"en": "Rooms with a matching view:", "hr": "Sobe s traženim pogledom:"},
    "bed_setup": {"en": "Bed configuration by room:", "hr": "Kreveti po sobama:"},
    "amenities_in": {"en": "Amenities in {room}:", "hr": "Oprema u sobi {room}:"},
    "amenities_all": {"en": "Room amenities across our rooms:", "hr": "Oprema u našim sobama:"},
    "differences": {"en": "Differences between {a} and {b}:", "hr": "Razlike između {a} i {b}:"},
    "persons": {"en": "guests", "hr": "osobe"},
}


def resolve_language(text: str, requested: Optional[str] = None) -> str:
    """Requested language if supported, otherwise detected from the text."""
    if requested:
        requested = requested.lower()[:2]
        return requested if requested in SUPPORTED_LANGUAGES else settings.DEFAULT_LANGUAGE
    try:
        detected = detect(text)
    except LangDetectException:
        return settings.DEFAULT_LANGUAGE
    return "hr" if detected in _SOUTH_SLAVIC else "en"


def message(key: str, lang: str, **kwargs) -> str:
    texts = MESSAGES[key]
    text = texts.get(lang) or texts["en"]
    return text.format(**kwargs) if kwargs else text


def label(key: str, lang: str, **kwargs) -> str:
    texts = LABELS[key]
    text = texts.get(lang) or texts["en"]
    return text.format(**kwargs) if kwargs else text
