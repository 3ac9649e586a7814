"""
Cliente mínimo de la API REST del ledger (compatible con Stripe, sin SDKs externos).

Requisitos cubiertos:
- requests
- paginación por cursor (limit + starting_after, respuesta {data, has_more})
- point-fetch por id (retrieve)
- rate-limit/backoff (429, 5xx)
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Iterator, Optional

import requests
from loguru import logger

from billing_sync.shared.exceptions.sync import RemoteApiError


@dataclass(frozen=True)
class LedgerCredentials:
    api_key: str


@dataclass(frozen=True)
class Page:
    """
    Una página de una colección remota.

    next_cursor es el id del último item cuando has_more es True; None si es
    la página terminal.
    """

    items: list[dict[str, Any]]
    next_cursor: Optional[str]
    has_more: bool


class LedgerClient:
    """
    Cliente HTTP del ledger. Expone un generator que produce registros crudos.

    Importante:
    - No hace cast de tipos: eso lo decide el normalizador.
    - No asume orden más allá del que documenta la fuente (created desc).
    """

    def __init__(
        self,
        credentials: LedgerCredentials,
        *,
        session: Optional[requests.Session] = None,
        base_url: str = "https://api.stripe.com/v1",
        timeout_s: int = 30,
        max_retries: int = 3,
        min_backoff_s: float = 0.8,
        max_backoff_s: float = 20.0,
    ) -> None:
        self._creds = credentials
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s
        self._session = session or requests.Session()

    def fetch_page(
        self,
        collection: str,
        *,
        cursor: Optional[str] = None,
        page_size: int = 100,
        filters: Optional[dict[str, Any]] = None,
    ) -> Page:
        """
        Trae una página de la colección.

        - limit / starting_after según el contrato de paginación por cursor
        - filters se envía tal cual como query string (p.ej. status, created[gt])
        """
        params: dict[str, Any] = {"limit": page_size}
        if filters:
            params.update(filters)
        if cursor:
            params["starting_after"] = cursor

        payload = self._request_json("GET", f"{self._base_url}/{collection}", params=params)
        items = payload.get("data") or []
        has_more = bool(payload.get("has_more"))

        if has_more and not items:
            # Página vacía con has_more=true: la tratamos como terminal para no iterar sin fin.
            logger.warning(f"Ledger devolvió has_more=true sin datos en '{collection}'; se corta la paginación")
            return Page(items=[], next_cursor=None, has_more=False)

        next_cursor = None
        if has_more:
            next_cursor = items[-1].get("id")
            if not next_cursor:
                raise RemoteApiError(f"El último item de '{collection}' no contiene 'id'; no se puede paginar")

        return Page(items=items, next_cursor=next_cursor, has_more=has_more)

    def iter_collection(
        self,
        collection: str,
        *,
        page_size: int = 100,
        filters: Optional[dict[str, Any]] = None,
    ) -> Iterator[dict[str, Any]]:
        """
        Itera todos los registros de la colección, página por página (lazy).

        Un fallo al traer cualquier página propaga RemoteApiError: el caller
        decide abortar la corrida.
        """
        cursor: Optional[str] = None
        page_number = 0

        while True:
            page_number += 1
            page = self.fetch_page(collection, cursor=cursor, page_size=page_size, filters=filters)
            logger.debug(f"'{collection}' página {page_number}: {len(page.items)} registros (has_more={page.has_more})")

            yield from page.items

            if not page.has_more:
                break
            cursor = page.next_cursor

    def retrieve(self, collection: str, record_id: str) -> dict[str, Any]:
        """Point-fetch de un registro por id."""
        return self._request_json("GET", f"{self._base_url}/{collection}/{record_id}", params=None)

    def _request_json(
        self, method: str, url: str, *, params: Optional[dict[str, Any]]
    ) -> dict[str, Any]:
        """
        Request HTTP con backoff para 429/5xx.

        Estrategia:
        - 429: respeta Retry-After si existe, si no exponencial con jitter simple.
        - 5xx: exponencial con jitter.
        - 4xx (no 429): error inmediato (config/auth mal, id inexistente).
        - Errores de red: RemoteApiError inmediato.
        """
        headers = {"Authorization": f"Bearer {self._creds.api_key}"}

        for attempt in range(self._max_retries + 1):
            try:
                resp = self._session.request(
                    method=method,
                    url=url,
                    params=params,
                    headers=headers,
                    timeout=self._timeout_s,
                )
            except requests.RequestException as e:
                raise RemoteApiError(f"Request al ledger falló ({url}): {e}") from e

            if 200 <= resp.status_code < 300:
                try:
                    return resp.json()
                except ValueError as e:
                    # requests.JSONDecodeError hereda de ValueError.
                    raise RemoteApiError(
                        f"Respuesta del ledger no es JSON ({url}): {e}",
                        status_code=resp.status_code,
                    ) from e

            # Errores recuperables
            if resp.status_code == 429 or 500 <= resp.status_code < 600:
                if attempt >= self._max_retries:
                    raise RemoteApiError(
                        f"Ledger error {resp.status_code} tras {attempt} reintentos: {resp.text}",
                        status_code=resp.status_code,
                    )

                retry_after = resp.headers.get("Retry-After")
                if retry_after:
                    try:
                        sleep_s = float(retry_after)
                    except ValueError:
                        sleep_s = self._min_backoff_s
                else:
                    # Exponencial simple + jitter proporcional
                    base = min(self._max_backoff_s, self._min_backoff_s * (2**attempt))
                    sleep_s = base + (0.15 * base)

                logger.warning(f"Ledger respondió {resp.status_code}; reintento {attempt + 1} en {sleep_s:.1f}s")
                time.sleep(sleep_s)
                continue

            # Errores no recuperables
            raise RemoteApiError(
                f"Ledger request falló {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
            )

        raise RemoteApiError(f"Ledger request sin respuesta válida: {url}")
