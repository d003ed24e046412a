"""Modelos para las partes (emisor, receptor, responsables) y direcciones.

ES: Representación de las personas e instituciones que intervienen en un
    DTE: contraparte del documento, sujeto excluido de una FSE y los
    responsables/solicitantes de los eventos de invalidación y contingencia.
EN: Representation of the parties involved in a DTE.
"""

from pydantic import BaseModel, Field, field_validator

from dte_sv.models.enums import IdentityDocumentType


def strip_required(value: str) -> str:
    """Elimina espacios y rechaza cadenas vacías."""
    value = value.strip()
    if not value:
        msg = "El valor no puede estar vacío"
        raise ValueError(msg)
    return value


class Identity(BaseModel):
    """Identidad de una persona (responsable o solicitante).

    ES: Nombre, tipo de documento (DUI, NIT, pasaporte...) y número de
        documento. Los tres campos son obligatorios.
    EN: Name, identity document type and number, all mandatory.
    """

    name: str = Field(..., max_length=100, description="Nombre / Name")
    document_type: IdentityDocumentType = Field(
        default=IdentityDocumentType.DUI,
        description="Tipo de documento / Document type",
    )
    document_number: str = Field(
        ...,
        max_length=20,
        description="Número de documento / Document number",
    )

    @field_validator("name", "document_number")
    @classmethod
    def check_required(cls, value: str) -> str:
        return strip_required(value)


class Address(BaseModel):
    """Dirección (catálogo de departamentos y municipios del MH)."""

    department: str = Field(..., description="Código de departamento / Department")
    municipality: str = Field(..., description="Código de municipio / Municipality")
    complement: str = Field(
        ...,
        max_length=200,
        description="Complemento de la dirección / Street address",
    )

    @field_validator("department", "municipality", "complement")
    @classmethod
    def check_required(cls, value: str) -> str:
        return strip_required(value)


class Counterparty(BaseModel):
    """Contraparte del documento (receptor o sujeto excluido).

    ES: Datos fiscales del receptor obtenidos del contexto de facturación
        del marketplace. Para una FSE representa al sujeto excluido y la
        dirección es obligatoria.
    EN: Counter-party fiscal data read from the marketplace billing context.
    """

    name: str = Field(..., max_length=250, description="Nombre o razón social / Name")
    document_type: IdentityDocumentType | None = Field(
        default=None,
        description="Tipo de documento / Document type",
    )
    document_number: str | None = Field(
        default=None,
        description="Número de documento / Document number",
    )
    nrc: str | None = Field(
        default=None,
        pattern=r"^\d{1,8}$",
        description="Número de registro de contribuyente / Taxpayer registry number",
    )
    activity_code: str | None = Field(
        default=None,
        description="Código de actividad económica / Economic activity code",
    )
    activity_description: str | None = Field(
        default=None,
        description="Descripción de la actividad / Activity description",
    )
    address: Address | None = Field(default=None, description="Dirección / Address")
    email: str | None = Field(default=None, description="Correo / Email")
    phone: str | None = Field(default=None, description="Teléfono / Phone")

    @field_validator("name")
    @classmethod
    def check_required(cls, value: str) -> str:
        return strip_required(value)


class Emitter(BaseModel):
    """Emisor de los DTE (la plataforma o el proveedor representado).

    ES: El código de establecimiento y el de punto de venta forman la serie
        de numeración de los números de control.
    EN: Establishment and point-of-sale codes form the control number series.
    """

    nit: str = Field(..., pattern=r"^\d{9}(\d{5})?$", description="NIT del emisor")
    nrc: str = Field(..., pattern=r"^\d{1,8}$", description="NRC del emisor")
    name: str = Field(..., max_length=250, description="Razón social / Legal name")
    activity_code: str = Field(..., description="Código de actividad económica")
    activity_description: str = Field(..., description="Actividad económica")
    establishment_code: str = Field(
        default="M001",
        min_length=4,
        max_length=4,
        description="Código de establecimiento / Establishment code",
    )
    point_of_sale_code: str = Field(
        default="P001",
        min_length=4,
        max_length=4,
        description="Código de punto de venta / Point of sale code",
    )
    address: Address
    phone: str | None = None
    email: str | None = None

    @property
    def series(self) -> str:
        """Serie de numeración (establecimiento + punto de venta)."""
        return f"{self.establishment_code}{self.point_of_sale_code}"
