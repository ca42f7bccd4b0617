"""Fixed output row schema for joined license records."""

from pydantic import BaseModel, ConfigDict


class LicenseRow(BaseModel):
    """One output row: a fully merged license or an unmatched listing record."""

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        str_strip_whitespace=True,
        coerce_numbers_to_str=True,
    )

    license_number: str
    business_name: str | None = None
    address: str | None = None
    city: str | None = None
    zip_code: str | None = None
    county: str | None = None
    license_status: str | None = None
    entity_type: str | None = None
    classifications: str | None = None
    issue_date: str | None = None
    expiration_date: str | None = None
    bond_amount: str | None = None
    workers_comp: str | None = None

    def as_csv_row(self) -> dict[str, str]:
        return {name: value or "" for name, value in self.model_dump().items()}


LICENSE_ROW_FIELDS: tuple[str, ...] = tuple(LicenseRow.model_fields)
