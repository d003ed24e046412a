"""Construcción y lectura del JSON canónico de los DTE.

ES: Convierte un `FiscalDocument` en el JSON que espera el Ministerio de
    Hacienda (secciones `identificacion`, `emisor`, `receptor`,
    `documentoRelacionado`, `cuerpoDocumento`, `resumen`; estructuras propias
    para los eventos de invalidación y contingencia) y extrae de vuelta los
    identificadores relevantes. No firma: la firma es responsabilidad del
    cliente de transmisión.
EN: Builds the MH canonical JSON for a document and parses identifiers back.
    Signing is not done here.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from urllib.parse import urlencode
from uuid import uuid4

from pydantic import BaseModel

from dte_sv.models.document import SV_TZ, FiscalDocument
from dte_sv.models.enums import DocumentKind, DocumentState
from dte_sv.models.party import Counterparty, Emitter

PUBLIC_LOOKUP_URL = "https://admin.factura.gob.sv/consultaPublica"

# Versión del esquema JSON por tipo de DTE
DTE_VERSIONS: dict[DocumentKind, int] = {
    DocumentKind.INVOICE_CONSUMER: 1,
    DocumentKind.INVOICE_CREDIT_FISCAL: 3,
    DocumentKind.CREDIT_NOTE: 3,
    DocumentKind.DEBIT_NOTE: 3,
    DocumentKind.FSE: 1,
    DocumentKind.INVALIDATION_EVENT: 2,
    DocumentKind.CONTINGENCY_EVENT: 3,
}

_SERVICE_ITEM = 2
_RELATED_ELECTRONIC = 2


class PayloadSummary(BaseModel):
    """Identificadores extraídos de un JSON de DTE."""

    kind: DocumentKind
    ambiente: str
    generation_code: str
    control_number: str | None = None
    issued_at: datetime | None = None
    amount: Decimal | None = None
    related_generation_code: str | None = None
    reported_codes: list[str] = []


def new_generation_code() -> str:
    """Genera un código de generación (UUID v4 en mayúsculas)."""
    return str(uuid4()).upper()


def format_control_number(kind: DocumentKind, series: str, sequence: int) -> str:
    """Número de control `DTE-{tipo}-{serie}-{correlativo de 15 dígitos}`.

    Raises:
        ValueError: Si el tipo es un evento (los eventos no se numeran).
    """
    if kind.is_event:
        msg = f"Los eventos no llevan número de control : {kind}"
        raise ValueError(msg)
    if sequence < 1:
        msg = f"Correlativo inválido : {sequence}"
        raise ValueError(msg)
    return f"DTE-{kind.value}-{series}-{sequence:015d}"


def local_now() -> datetime:
    return datetime.now(SV_TZ)


def _date(value: datetime) -> str:
    return value.astimezone(SV_TZ).strftime("%Y-%m-%d")


def _time(value: datetime) -> str:
    return value.astimezone(SV_TZ).strftime("%H:%M:%S")


def _money(value: Decimal | None) -> float:
    return float(value or Decimal("0.00"))


def _emitter_section(emitter: Emitter) -> dict:
    return {
        "nit": emitter.nit,
        "nrc": emitter.nrc,
        "nombre": emitter.name,
        "codActividad": emitter.activity_code,
        "descActividad": emitter.activity_description,
        "direccion": {
            "departamento": emitter.address.department,
            "municipio": emitter.address.municipality,
            "complemento": emitter.address.complement,
        },
        "telefono": emitter.phone,
        "correo": emitter.email,
        "codEstable": emitter.establishment_code,
        "codPuntoVenta": emitter.point_of_sale_code,
    }


def _counterparty_section(party: Counterparty | None) -> dict | None:
    if party is None:
        return None
    return {
        "tipoDocumento": party.document_type.value if party.document_type else None,
        "numDocumento": party.document_number,
        "nrc": party.nrc,
        "nombre": party.name,
        "codActividad": party.activity_code,
        "descActividad": party.activity_description,
        "direccion": (
            {
                "departamento": party.address.department,
                "municipio": party.address.municipality,
                "complemento": party.address.complement,
            }
            if party.address
            else None
        ),
        "telefono": party.phone,
        "correo": party.email,
    }


def build_payload(
    document: FiscalDocument,
    emitter: Emitter,
    *,
    ambiente: str,
    generation_code: str,
    control_number: str | None,
    issued_at: datetime,
    target: FiscalDocument | None = None,
) -> dict:
    """Construye el JSON canónico del documento.

    ES: `target` es el documento afectado (obligatorio para notas de
        crédito/débito). Los eventos de invalidación y contingencia usan
        las instantáneas guardadas en sus detalles.
    EN: `target` is the amended document (required for credit/debit notes).

    Raises:
        ValueError: Si faltan datos obligatorios para el tipo de documento.
    """
    if document.kind == DocumentKind.INVALIDATION_EVENT:
        return _invalidation_payload(document, emitter, ambiente, generation_code, issued_at)
    if document.kind == DocumentKind.CONTINGENCY_EVENT:
        return _contingency_payload(document, emitter, ambiente, generation_code, issued_at)

    payload: dict = {
        "identificacion": {
            "version": DTE_VERSIONS[document.kind],
            "ambiente": ambiente,
            "tipoDte": document.kind.value,
            "numeroControl": control_number,
            "codigoGeneracion": generation_code,
            "tipoModelo": 1,
            "tipoOperacion": 1,
            "tipoContingencia": None,
            "motivoContin": None,
            "fecEmi": _date(issued_at),
            "horEmi": _time(issued_at),
            "tipoMoneda": "USD",
        },
        "emisor": _emitter_section(emitter),
        "documentoRelacionado": None,
        "cuerpoDocumento": [
            {
                "numItem": 1,
                "tipoItem": _SERVICE_ITEM,
                "cantidad": 1,
                "descripcion": document.description or "Servicio",
                "precioUni": _money(document.amount),
                "ventaGravada": _money(document.amount),
            }
        ],
        "resumen": {
            "totalGravada": _money(document.amount),
            "montoTotalOperacion": _money(document.amount),
            "totalPagar": _money(document.amount),
        },
        "extension": None,
    }

    if document.kind == DocumentKind.FSE:
        payload["sujetoExcluido"] = _counterparty_section(document.counterparty)
        withheld = document.income_tax_withheld or Decimal("0.00")
        payload["resumen"]["reteRenta"] = _money(withheld)
        payload["resumen"]["totalPagar"] = _money((document.amount or Decimal("0")) - withheld)
    else:
        payload["receptor"] = _counterparty_section(document.counterparty)

    if document.kind.is_note:
        if target is None or target.generation_code is None:
            msg = "Una nota requiere el documento relacionado aceptado por el MH"
            raise ValueError(msg)
        payload["documentoRelacionado"] = [
            {
                "tipoDocumento": target.kind.value,
                "tipoGeneracion": _RELATED_ELECTRONIC,
                "numeroDocumento": target.generation_code,
                "fechaEmision": _date(target.issued_at or target.created_at),
            }
        ]
        note = document.note
        if note is not None:
            payload["cuerpoDocumento"][0]["descripcion"] = note.reason_text or note.reason.value
            payload["extension"] = {"observaciones": note.remarks}

    return payload


def _invalidation_payload(
    document: FiscalDocument,
    emitter: Emitter,
    ambiente: str,
    generation_code: str,
    issued_at: datetime,
) -> dict:
    details = document.invalidation
    if details is None:
        msg = "El evento de invalidación no tiene detalles"
        raise ValueError(msg)
    receptor = document.counterparty
    return {
        "identificacion": {
            "version": DTE_VERSIONS[DocumentKind.INVALIDATION_EVENT],
            "ambiente": ambiente,
            "codigoGeneracion": generation_code,
            "fecAnula": _date(issued_at),
            "horAnula": _time(issued_at),
        },
        "emisor": _emitter_section(emitter),
        "documento": {
            "tipoDte": details.target_kind.value,
            "codigoGeneracion": details.target_generation_code,
            "selloRecibido": details.target_reception_seal,
            "numeroControl": details.target_control_number,
            "fecEmi": _date(details.target_issued_at) if details.target_issued_at else None,
            "codigoGeneracionR": details.replacement_generation_code,
            "tipoDocumento": (
                receptor.document_type.value if receptor and receptor.document_type else None
            ),
            "numDocumento": receptor.document_number if receptor else None,
            "nombre": receptor.name if receptor else None,
        },
        "motivo": {
            "tipoAnulacion": int(details.invalidation_type),
            "motivoAnulacion": details.motive,
            "nombreResponsable": details.responsible.name,
            "tipDocResponsable": details.responsible.document_type.value,
            "numDocResponsable": details.responsible.document_number,
            "nombreSolicita": details.requester.name,
            "tipDocSolicita": details.requester.document_type.value,
            "numDocSolicita": details.requester.document_number,
        },
    }


def _contingency_payload(
    document: FiscalDocument,
    emitter: Emitter,
    ambiente: str,
    generation_code: str,
    issued_at: datetime,
) -> dict:
    details = document.contingency
    if details is None:
        msg = "El evento de contingencia no tiene detalles"
        raise ValueError(msg)
    return {
        "identificacion": {
            "version": DTE_VERSIONS[DocumentKind.CONTINGENCY_EVENT],
            "ambiente": ambiente,
            "codigoGeneracion": generation_code,
            "fTransmision": _date(issued_at),
            "hTransmision": _time(issued_at),
        },
        "emisor": {
            "nit": emitter.nit,
            "nombre": emitter.name,
            "nombreResponsable": details.responsible.name,
            "tipoDocResponsable": details.responsible.document_type.value,
            "numeroDocResponsable": details.responsible.document_number,
            "codEstableMH": emitter.establishment_code,
            "codPuntoVenta": emitter.point_of_sale_code,
            "telefono": emitter.phone,
            "correo": emitter.email,
        },
        "detalleDTE": [
            {
                "noItem": index,
                "codigoGeneracion": item.candidate_code,
                "tipoDoc": item.kind.value,
            }
            for index, item in enumerate(details.reported, start=1)
        ],
        "motivo": {
            "fInicio": _date(details.window.start),
            "fFin": _date(details.window.end),
            "hInicio": _time(details.window.start),
            "hFin": _time(details.window.end),
            "tipoContingencia": details.reason.code,
            "motivoContingencia": details.reason_text,
        },
    }


def parse_payload(payload: dict) -> PayloadSummary:
    """Extrae los identificadores de un JSON de DTE o de evento.

    Raises:
        ValueError: Si el JSON no tiene la estructura esperada.
    """
    try:
        ident = payload["identificacion"]
        ambiente = ident["ambiente"]
        code = ident["codigoGeneracion"]
    except (KeyError, TypeError) as exc:
        msg = "JSON de DTE sin sección 'identificacion' válida"
        raise ValueError(msg) from exc

    if "detalleDTE" in payload:
        return PayloadSummary(
            kind=DocumentKind.CONTINGENCY_EVENT,
            ambiente=ambiente,
            generation_code=code,
            reported_codes=[item["codigoGeneracion"] for item in payload["detalleDTE"]],
        )
    if "fecAnula" in ident:
        return PayloadSummary(
            kind=DocumentKind.INVALIDATION_EVENT,
            ambiente=ambiente,
            generation_code=code,
            related_generation_code=payload.get("documento", {}).get("codigoGeneracion"),
        )

    issued_at = datetime.strptime(
        f"{ident['fecEmi']} {ident['horEmi']}", "%Y-%m-%d %H:%M:%S"
    ).replace(tzinfo=SV_TZ)
    related = payload.get("documentoRelacionado") or []
    resumen = payload.get("resumen") or {}
    total = resumen.get("montoTotalOperacion")
    return PayloadSummary(
        kind=DocumentKind(ident["tipoDte"]),
        ambiente=ambiente,
        generation_code=code,
        control_number=ident.get("numeroControl"),
        issued_at=issued_at,
        amount=Decimal(str(total)).quantize(Decimal("0.01")) if total is not None else None,
        related_generation_code=related[0]["numeroDocumento"] if related else None,
    )


def public_lookup_url(document: FiscalDocument) -> str | None:
    """URL de consulta pública del MH (código QR).

    ES: Solo disponible para documentos procesados.
    EN: Only available for processed documents.
    """
    if document.state != DocumentState.PROCESSED or document.generation_code is None:
        return None
    issued_at = document.issued_at or document.created_at
    query = urlencode(
        {
            "ambiente": document.ambiente or "00",
            "codGen": document.generation_code,
            "fechaEmi": _date(issued_at),
        }
    )
    return f"{PUBLIC_LOOKUP_URL}?{query}"
