"""
Share links - the DBML text travels base64-encoded in the query string
"""
import base64
import binascii
from typing import Optional
from urllib.parse import parse_qs, quote, urlparse


def encode_diagram(dbml_code: str) -> str:
    return base64.urlsafe_b64encode(dbml_code.encode('utf-8')).decode('ascii')


def decode_diagram(value: str) -> Optional[str]:
    """Decode a ``diagram`` parameter; None when it is not valid base64 text."""
    try:
        padded = value + '=' * (-len(value) % 4)
        return base64.urlsafe_b64decode(padded.encode('ascii')).decode('utf-8')
    except (binascii.Error, UnicodeError, ValueError):
        return None


def build_share_link(base_url: str, dbml_code: str) -> str:
    return f"{base_url.rstrip('/')}/?diagram={quote(encode_diagram(dbml_code))}"


def build_embed_code(share_link: str, height: int = 500) -> str:
    return (
        f'<iframe \n'
        f'  src="{share_link}&embed=true" \n'
        f'  width="100%" \n'
        f'  height="{height}" \n'
        f'  frameborder="0" \n'
        f'  style="border-radius: 8px; border: 1px solid #333;">\n'
        f'</iframe>'
    )


def diagram_from_link(link: str) -> Optional[str]:
    values = parse_qs(urlparse(link).query).get('diagram')
    if not values:
        return None
    return decode_diagram(values[0])
