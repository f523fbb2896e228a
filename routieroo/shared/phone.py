"""Phone number display and dial-link helpers"""

import re

CALL_LINK_TEMPLATES = {
    "phone": "tel:{number}",
    "google-voice": "https://voice.google.com/u/0/calls?a=nc,%2B{number}",
    "whatsapp": "https://wa.me/{number}",
    "skype": "skype:{number}?call",
    "facetime": "facetime:{number}",
}

TEXT_LINK_TEMPLATES = {
    "sms": "sms:{number}",
    "whatsapp": "https://wa.me/{number}",
}


def _format_ten(digits: str) -> str:
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"


def format_us_phone_number(phone_number: str) -> str:
    """Format a US phone number for display as (XXX) XXX-XXXX"""
    cleaned = re.sub(r"\D", "", phone_number)

    if len(cleaned) == 10:
        return _format_ten(cleaned)
    if len(cleaned) == 11 and cleaned[0] == "1":
        return _format_ten(cleaned[1:])
    if len(cleaned) > 10:
        # International or longer numbers: format the last 10 digits
        return _format_ten(cleaned[-10:])

    return cleaned or phone_number


def clean_phone_number(phone_number: str) -> str:
    """Digits with an optional leading +, suitable for tel: links"""
    cleaned = re.sub(r"[^\d+]", "", phone_number)

    if cleaned.startswith("+"):
        return cleaned

    digits = re.sub(r"\D", "", cleaned)
    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits[0] == "1":
        return f"+{digits}"

    return digits


def build_call_link(phone_number: str, service: str = "phone") -> str:
    """Dial link for the user's preferred calling service"""
    template = CALL_LINK_TEMPLATES.get(service)
    if template is None:
        raise ValueError(f"Unknown calling service: {service}")

    number = re.sub(r"[\s\-()]", "", phone_number)
    return template.format(number=number)


def build_text_link(phone_number: str, service: str = "sms") -> str:
    template = TEXT_LINK_TEMPLATES.get(service)
    if template is None:
        raise ValueError(f"Unknown texting service: {service}")

    number = re.sub(r"[^\d+]", "", phone_number)
    return template.format(number=number)
