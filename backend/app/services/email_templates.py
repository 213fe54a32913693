"""
Customer email bodies (HTML + plain text), rendered from Jinja2 templates
in app/templates/email. HTML templates are autoescaped; .txt are not.
"""

from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

TEMPLATE_DIR = Path(__file__).parent.parent / "templates" / "email"


def format_date(value: Optional[date], format_str: str = "%d.%m.%Y") -> str:
    return value.strftime(format_str) if value else "-"


@lru_cache()
def get_environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(TEMPLATE_DIR),
        autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=True),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["format_date"] = format_date
    return env


def _render_pair(name: str, **context) -> tuple[str, str]:
    env = get_environment()
    html = env.get_template(f"{name}.html").render(**context)
    text = env.get_template(f"{name}.txt").render(**context)
    return html, text


def booking_confirmation(
    booking_ref: str,
    booking_url: str,
    trip_title: str,
    start_date: Optional[date],
    end_date: Optional[date],
    participants_count: int,
    payment_url: Optional[str] = None,
) -> tuple[str, str, str]:
    """Returns (subject, html, text)."""
    html, text = _render_pair(
        "booking_confirmation",
        booking_ref=booking_ref,
        booking_url=booking_url,
        trip_title=trip_title,
        start_date=start_date,
        end_date=end_date,
        participants_count=participants_count,
        payment_url=payment_url,
    )
    return f"Booking confirmation {booking_ref}", html, text


def payment_confirmation(booking_ref: str) -> tuple[str, str, str]:
    html, text = _render_pair("payment_confirmed", booking_ref=booking_ref)
    return f"Payment confirmed for booking {booking_ref}", html, text
