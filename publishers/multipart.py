# publishers/multipart.py
import uuid
from typing import Dict, Tuple

CRLF = b"\r\n"


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\r", " ").replace("\n", " ")


def encode_multipart(fields: Dict[str, str], file_field: str, file_name: str, payload: bytes,
                     file_content_type: str = "video/mp4", boundary: str = None) -> Tuple[bytes, str]:
    """
    Builds a multipart/form-data body by hand.

    One part per metadata field (in insertion order, empty values skipped), then the
    binary part, then the close delimiter. Returns (body, Content-Type header value).
    """
    boundary = boundary or f"----ReactShareBoundary{uuid.uuid4().hex}"
    delimiter = b"--" + boundary.encode("ascii")
    body = bytearray()

    for name, value in fields.items():
        if value is None or value == "":
            continue
        body += delimiter + CRLF
        body += f'Content-Disposition: form-data; name="{_quote(name)}"'.encode("utf-8") + CRLF
        body += CRLF
        body += str(value).encode("utf-8") + CRLF

    body += delimiter + CRLF
    body += (
        f'Content-Disposition: form-data; name="{_quote(file_field)}"; filename="{_quote(file_name)}"'
    ).encode("utf-8") + CRLF
    body += f"Content-Type: {file_content_type}".encode("ascii") + CRLF
    body += CRLF
    body += payload + CRLF

    body += delimiter + b"--" + CRLF
    return bytes(body), f"multipart/form-data; boundary={boundary}"
