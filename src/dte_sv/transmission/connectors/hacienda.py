"""Conector HTTP hacia los servicios de recepción del Ministerio de Hacienda.

ES: Autentica contra `/seguridad/auth`, envía los DTE a `/fesv/recepciondte`,
    las invalidaciones a `/fesv/anulardte` y los eventos de contingencia a
    `/fesv/contingencia`. Toda falla de red, tiempo de espera, error 5xx,
    falla de autenticación o respuesta mal formada se normaliza como
    `Unavailable`; solo un estado `RECHAZADO` explícito es `Rejected`.
EN: HTTP connector for the MH reception services. Transport failures, 5xx,
    auth failures and malformed bodies map to `Unavailable`; only an
    explicit `RECHAZADO` maps to `Rejected`.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime
from uuid import uuid4

import httpx

from dte_sv.models.enums import Ambiente, DocumentKind
from dte_sv.models.payload import DTE_VERSIONS, SV_TZ
from dte_sv.transmission.base import BaseTransmitter
from dte_sv.transmission.models import Accepted, Rejected, TransmissionMode, Unavailable

logger = logging.getLogger(__name__)

DEFAULT_URLS: dict[str, str] = {
    Ambiente.TEST: "https://apitest.dtes.mh.gob.sv",
    Ambiente.PRODUCTION: "https://api.dtes.mh.gob.sv",
}

AUTH_PATH = "/seguridad/auth"
RECEPTION_PATH = "/fesv/recepciondte"
INVALIDATION_PATH = "/fesv/anulardte"
CONTINGENCY_PATH = "/fesv/contingencia"

_ACCEPTED_STATES = frozenset({"PROCESADO", "RECIBIDO"})
_REJECTED_STATE = "RECHAZADO"


def unsigned(payload: dict) -> str:
    """Firmador por defecto: serializa el JSON sin firmar (ambiente de pruebas)."""
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def _parse_processed_at(value: str | None) -> datetime | None:
    if not value:
        return None
    for fmt in ("%d/%m/%Y %H:%M:%S", "%Y-%m-%d %H:%M:%S"):
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=SV_TZ)
        except ValueError:
            continue
    return None


class HaciendaTransmitter(BaseTransmitter):
    """Cliente HTTP asíncrono (httpx) para el MH.

    ES: El token de autenticación se obtiene la primera vez y se reutiliza.
        El firmador es un invocable inyectado que recibe el JSON y devuelve
        el documento firmado (JWS); la firma en sí está fuera del alcance
        de este cliente.
    EN: The auth token is fetched lazily and reused. The signer is an
        injected callable returning the signed document.
    """

    def __init__(
        self,
        nit: str,
        password: str,
        ambiente: str = Ambiente.TEST,
        base_url: str | None = None,
        timeout: float = 30.0,
        signer: Callable[[dict], str] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            ambiente=ambiente,
            base_url=base_url or DEFAULT_URLS.get(str(ambiente), DEFAULT_URLS[Ambiente.TEST]),
        )
        self.nit = nit
        self._password = password
        self.timeout = timeout
        self.signer = signer or unsigned
        self._client = http_client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout, connect=10.0),
            headers={"User-Agent": "dte-sv"},
        )
        self._token: str | None = None

    async def aclose(self) -> None:
        await self._client.aclose()

    # --- Autenticación ---

    async def _authenticate(self) -> str | Unavailable:
        """Obtiene (o reutiliza) el token del MH."""
        if self._token is not None:
            return self._token
        try:
            response = await self._client.post(
                AUTH_PATH, data={"user": self.nit, "pwd": self._password}
            )
        except httpx.HTTPError as exc:
            logger.warning("Autenticación MH sin respuesta : %s", exc)
            return Unavailable(reason=f"Autenticación sin respuesta : {exc}")

        try:
            body = response.json()
        except ValueError:
            body = None
        token = None
        if response.status_code == 200 and isinstance(body, dict):
            token = (body.get("body") or {}).get("token")
        if not token:
            logger.error("Autenticación MH fallida (HTTP %s)", response.status_code)
            return Unavailable(
                reason=f"Autenticación fallida (HTTP {response.status_code})",
                response=body if isinstance(body, dict) else None,
            )
        self._token = token
        return token

    # --- Envío ---

    def _request_for(
        self, payload: dict, mode: TransmissionMode, kind: DocumentKind
    ) -> tuple[str, dict]:
        documento = self.signer(payload)
        ident = payload.get("identificacion", {})
        if mode == TransmissionMode.CONTINGENCY_REPORT:
            return CONTINGENCY_PATH, {"nit": self.nit, "documento": documento}
        if kind == DocumentKind.INVALIDATION_EVENT:
            return INVALIDATION_PATH, {
                "ambiente": self.ambiente,
                "idEnvio": uuid4().hex,
                "version": DTE_VERSIONS[kind],
                "documento": documento,
            }
        return RECEPTION_PATH, {
            "ambiente": self.ambiente,
            "idEnvio": uuid4().hex,
            "version": DTE_VERSIONS[kind],
            "tipoDte": kind.value,
            "documento": documento,
            "codigoGeneracion": ident.get("codigoGeneracion"),
        }

    async def submit(
        self,
        payload: dict,
        mode: TransmissionMode,
        *,
        kind: DocumentKind,
    ) -> Accepted | Rejected | Unavailable:
        """Envía el documento y normaliza la respuesta del MH."""
        token = await self._authenticate()
        if isinstance(token, Unavailable):
            return token

        path, body = self._request_for(payload, mode, kind)
        try:
            response = await self._client.post(
                path, json=body, headers={"Authorization": token}
            )
        except httpx.TimeoutException as exc:
            logger.warning("Tiempo de espera agotado con el MH (%s) : %s", path, exc)
            return Unavailable(reason=f"Tiempo de espera agotado : {exc}")
        except httpx.HTTPError as exc:
            logger.warning("Error de red con el MH (%s) : %s", path, exc)
            return Unavailable(reason=f"Error de red : {exc}")

        return self._normalize(response, payload)

    def _normalize(
        self, response: httpx.Response, payload: dict
    ) -> Accepted | Rejected | Unavailable:
        status = response.status_code
        if status >= 500:
            return Unavailable(reason=f"Error del servidor del MH (HTTP {status})")
        if status in (401, 403):
            # El token expiró o fue revocado : se pedirá uno nuevo en el próximo envío
            self._token = None
            return Unavailable(reason=f"Autenticación rechazada (HTTP {status})")

        try:
            body = response.json()
        except ValueError:
            return Unavailable(reason=f"Respuesta mal formada (HTTP {status})")
        if not isinstance(body, dict):
            return Unavailable(reason=f"Respuesta mal formada (HTTP {status})")

        estado = str(body.get("estado") or "").upper()
        raw_observations = body.get("observaciones") or []
        if isinstance(raw_observations, str):
            raw_observations = [raw_observations]
        observations = [str(o) for o in raw_observations]

        if estado == _REJECTED_STATE:
            message = body.get("descripcionMsg") or body.get("mensaje")
            if message and message not in observations:
                observations.insert(0, str(message))
            return Rejected(observations=observations, message=message, response=body)

        if estado in _ACCEPTED_STATES and status < 300:
            ident = payload.get("identificacion", {})
            code = body.get("codigoGeneracion") or ident.get("codigoGeneracion")
            seal = body.get("selloRecibido")
            if not code or not seal:
                return Unavailable(
                    reason="Respuesta de aceptación sin código o sello", response=body
                )
            return Accepted(
                generation_code=str(code).upper(),
                control_number=ident.get("numeroControl"),
                reception_seal=str(seal),
                processed_at=_parse_processed_at(
                    body.get("fhProcesamiento") or body.get("fechaHora")
                ),
                observations=observations,
                response=body,
            )

        return Unavailable(
            reason=f"Respuesta inesperada del MH (HTTP {status}, estado {estado or '-'})",
            response=body,
        )
