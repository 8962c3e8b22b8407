"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts y headers para todos los proveedores de geocoding.
- Facilita testeo: se puede sustituir por un `httpx.MockTransport`.
"""

from __future__ import annotations

import httpx
from bs4 import BeautifulSoup

from core.config import AppSettings


def build_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Crea un `httpx.Client` con defaults seguros.

    Por qué síncrono:
    - El pipeline corre en un solo hilo y los límites de tasa se respetan con
      sleeps bloqueantes; un cliente async no aporta nada aquí.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.Client(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


def describe_html_error(html: str) -> str | None:
    """Título legible de una página de error HTML (p.ej. de un CDN).

    Devuelve None si no hay `<title>` o el texto no parece HTML.
    """

    if not html or "<" not in html or ">" not in html:
        return None

    soup = BeautifulSoup(html, "html.parser")
    if soup.title and soup.title.string:
        title = " ".join(soup.title.string.split())
        return title or None

    heading = soup.find(["h1", "h2"])
    if heading:
        text = " ".join(heading.get_text(" ").split())
        return text or None
    return None
