"""CNAB400 remittance encoder (Itaú salary-credit layout).

The encoder is a pure transformation: the same records, remittance sequence
and dates always produce byte-identical output. Amounts travel as integer
cents from ``PaymentRecord.amount`` into the numeric amount fields without
any intermediate conversion.

Record roles:
- header (type 0): originating company and bank, generation date,
  remittance sequence; always record 000001
- detail (type 1): one payment instruction per PaymentRecord
- trailer (type 9): record count (header + details + trailer) and total
"""

from __future__ import annotations

import calendar
from datetime import date
from typing import Protocol, Sequence, runtime_checkable

from payroll_remittance.errors import (
    EmptyRemittanceError,
    MissingBankDataError,
    TrailerMismatchError,
    ValidationError,
)
from payroll_remittance.remittance.fields import (
    FieldKind,
    FieldSpec,
    RecordLayout,
)
from payroll_remittance.remittance.types import (
    AccountType,
    CompanyProfile,
    DetailRecord,
    HeaderRecord,
    PaymentRecord,
    RemittanceFile,
    TrailerRecord,
)

FILE_CHARSET = "latin-1"
RECORD_SEPARATOR = "\r\n"

HEADER_LAYOUT = RecordLayout(
    "header",
    [
        FieldSpec("record_type", 1, 1, FieldKind.CONSTANT, "0"),
        FieldSpec("operation", 2, 2, FieldKind.CONSTANT, "1"),
        FieldSpec("operation_literal", 3, 9, FieldKind.CONSTANT, "REMESSA"),
        FieldSpec("service_code", 10, 11, FieldKind.CONSTANT, "01"),
        FieldSpec("filler_1", 12, 26, FieldKind.BLANK),
        FieldSpec("company_code", 27, 46, FieldKind.NUMERIC),
        FieldSpec("company_name", 47, 76, FieldKind.ALPHA),
        FieldSpec("bank_code", 77, 79, FieldKind.NUMERIC),
        FieldSpec("bank_name", 80, 94, FieldKind.ALPHA),
        FieldSpec("generated_on", 95, 100, FieldKind.DATE_DDMMYY),
        FieldSpec("company_document", 101, 114, FieldKind.NUMERIC),
        FieldSpec("layout_version", 115, 116, FieldKind.CONSTANT, "01"),
        FieldSpec("remittance_sequence", 117, 123, FieldKind.NUMERIC),
        FieldSpec("filler_2", 124, 394, FieldKind.BLANK),
        FieldSpec("record_sequence", 395, 400, FieldKind.NUMERIC),
    ],
)

DETAIL_LAYOUT = RecordLayout(
    "detail",
    [
        FieldSpec("record_type", 1, 1, FieldKind.CONSTANT, "1"),
        FieldSpec("agency", 2, 6, FieldKind.NUMERIC),
        FieldSpec("agency_check_digit", 7, 7, FieldKind.ALPHA),
        FieldSpec("account", 8, 19, FieldKind.NUMERIC),
        FieldSpec("account_check_digit", 20, 20, FieldKind.ALPHA),
        FieldSpec("bank_code", 21, 23, FieldKind.NUMERIC),
        FieldSpec("account_type", 24, 24, FieldKind.NUMERIC),
        FieldSpec("name", 25, 64, FieldKind.ALPHA),
        FieldSpec("document", 65, 78, FieldKind.NUMERIC),
        FieldSpec("payment_date", 79, 86, FieldKind.DATE_DDMMYYYY),
        FieldSpec("amount", 87, 99, FieldKind.NUMERIC),
        FieldSpec("currency", 100, 101, FieldKind.CONSTANT, "00"),
        FieldSpec("operation", 102, 103, FieldKind.CONSTANT, "01"),
        FieldSpec("reference", 104, 139, FieldKind.ALPHA),
        FieldSpec("history", 140, 179, FieldKind.ALPHA),
        FieldSpec("detail_number", 180, 185, FieldKind.NUMERIC),
        FieldSpec("filler", 186, 394, FieldKind.BLANK),
        FieldSpec("record_sequence", 395, 400, FieldKind.NUMERIC),
    ],
)

TRAILER_LAYOUT = RecordLayout(
    "trailer",
    [
        FieldSpec("record_type", 1, 1, FieldKind.CONSTANT, "9"),
        FieldSpec("record_count", 2, 7, FieldKind.NUMERIC),
        FieldSpec("total_amount", 8, 24, FieldKind.NUMERIC),
        FieldSpec("filler", 25, 394, FieldKind.BLANK),
        FieldSpec("record_sequence", 395, 400, FieldKind.NUMERIC),
    ],
)

_ACCOUNT_TYPE_CODES = {AccountType.CHECKING: "1", AccountType.SAVINGS: "2"}
_ACCOUNT_TYPES_BY_CODE = {code: kind for kind, code in _ACCOUNT_TYPE_CODES.items()}

_PREFLIGHT_DATE = date(2000, 1, 1)


def last_day_of_month(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


@runtime_checkable
class RemittanceEncoder(Protocol):
    """Capability interface for bank remittance layouts."""

    profile: CompanyProfile
    layout_name: str
    file_extension: str
    media_type: str

    def validate(
        self,
        records: Sequence[PaymentRecord],
        payment_date: date | None = None,
    ) -> None:
        ...

    def build(
        self,
        records: Sequence[PaymentRecord],
        remittance_sequence: int,
        generated_on: date,
        payment_date: date | None = None,
    ) -> RemittanceFile:
        ...

    def render(self, remittance: RemittanceFile) -> bytes:
        ...

    def decode(self, data: bytes) -> RemittanceFile:
        ...


class Cnab400ItauEncoder:
    """CNAB400 encoder for salary credits through Banco Itaú."""

    layout_name = "CNAB400"
    file_extension = "REM"
    media_type = "text/plain; charset=iso-8859-1"

    def __init__(self, profile: CompanyProfile, history_prefix: str = "SALARIO"):
        self.profile = profile
        self.history_prefix = history_prefix

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def validate(
        self,
        records: Sequence[PaymentRecord],
        payment_date: date | None = None,
    ) -> None:
        """Pre-flight every record without consuming a remittance sequence."""
        remittance = self.build(records, 1, _PREFLIGHT_DATE, payment_date)
        self.render(remittance)

    def build(
        self,
        records: Sequence[PaymentRecord],
        remittance_sequence: int,
        generated_on: date,
        payment_date: date | None = None,
    ) -> RemittanceFile:
        """Build the record structure, rejecting anything the bank would."""
        if not records:
            raise EmptyRemittanceError()

        missing = [
            {
                "employee_id": str(record.employee_id),
                "name": record.name,
                "missing": record.bank.missing_fields(),
            }
            for record in records
            if not record.bank.is_complete
        ]
        if missing:
            raise MissingBankDataError(missing)

        if remittance_sequence < 1:
            raise ValidationError(
                f"Remittance sequence must be positive, got {remittance_sequence}",
                field="remittance_sequence",
            )

        profile = HEADER_LAYOUT.normalize(
            {
                "bank_code": self.profile.bank_code,
                "bank_name": self.profile.bank_name,
                "company_code": self.profile.company_code,
                "company_name": self.profile.company_name,
                "company_document": self.profile.company_document,
            }
        )
        header = HeaderRecord(
            bank_code=profile["bank_code"],
            bank_name=profile["bank_name"],
            company_code=profile["company_code"],
            company_name=profile["company_name"],
            company_document=profile["company_document"],
            generated_on=generated_on,
            remittance_sequence=remittance_sequence,
            record_sequence=1,
        )

        details = tuple(
            self._build_detail(record, number, payment_date)
            for number, record in enumerate(records, start=1)
        )

        trailer = TrailerRecord(
            record_count=len(details) + 2,
            total_amount_cents=sum(d.amount_cents for d in details),
            record_sequence=len(details) + 2,
        )

        remittance = RemittanceFile(header=header, details=details, trailer=trailer)
        check_trailer(remittance)
        return remittance

    def _build_detail(
        self,
        record: PaymentRecord,
        number: int,
        payment_date: date | None,
    ) -> DetailRecord:
        if not record.amount.is_positive():
            raise ValidationError(
                f"Payment amount for {record.name} must be greater than zero",
                field="amount",
                context={"employee_id": str(record.employee_id)},
            )

        reference_date = record.reference_date
        bank = record.bank
        values = {
            "agency": bank.agency,
            "agency_check_digit": bank.agency_check_digit,
            "account": bank.account,
            "account_check_digit": bank.account_check_digit,
            "bank_code": bank.code,
            "name": record.name,
            "document": record.document,
            "reference": str(record.employee_id),
            "history": f"{self.history_prefix} {reference_date.month:02d}/{reference_date.year}",
        }
        try:
            normalized = DETAIL_LAYOUT.normalize(values)
        except ValidationError as exc:
            exc.context.setdefault("employee_id", str(record.employee_id))
            exc.context.setdefault("name", record.name)
            raise

        return DetailRecord(
            detail_number=number,
            agency=normalized["agency"],
            agency_check_digit=normalized["agency_check_digit"],
            account=normalized["account"],
            account_check_digit=normalized["account_check_digit"],
            bank_code=normalized["bank_code"],
            account_type=bank.account_type,
            name=normalized["name"],
            document=normalized["document"],
            payment_date=payment_date
            or last_day_of_month(reference_date.year, reference_date.month),
            amount_cents=record.amount.cents,
            reference=normalized["reference"],
            history=normalized["history"],
            record_sequence=number + 1,
        )

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self, remittance: RemittanceFile) -> bytes:
        """Serialize to Latin-1 bytes, records separated by CRLF."""
        check_trailer(remittance)
        lines = [self._render_header(remittance.header)]
        lines.extend(self._render_detail(detail) for detail in remittance.details)
        lines.append(self._render_trailer(remittance.trailer))
        return RECORD_SEPARATOR.join(lines).encode(FILE_CHARSET)

    def encode(
        self,
        records: Sequence[PaymentRecord],
        remittance_sequence: int,
        generated_on: date,
        payment_date: date | None = None,
    ) -> bytes:
        return self.render(self.build(records, remittance_sequence, generated_on, payment_date))

    def _render_header(self, header: HeaderRecord) -> str:
        return HEADER_LAYOUT.render(
            {
                "company_code": header.company_code,
                "company_name": header.company_name,
                "bank_code": header.bank_code,
                "bank_name": header.bank_name,
                "generated_on": header.generated_on,
                "company_document": header.company_document,
                "remittance_sequence": header.remittance_sequence,
                "record_sequence": header.record_sequence,
            }
        )

    def _render_detail(self, detail: DetailRecord) -> str:
        return DETAIL_LAYOUT.render(
            {
                "agency": detail.agency,
                "agency_check_digit": detail.agency_check_digit,
                "account": detail.account,
                "account_check_digit": detail.account_check_digit,
                "bank_code": detail.bank_code,
                "account_type": _ACCOUNT_TYPE_CODES[detail.account_type],
                "name": detail.name,
                "document": detail.document,
                "payment_date": detail.payment_date,
                "amount": detail.amount_cents,
                "reference": detail.reference,
                "history": detail.history,
                "detail_number": detail.detail_number,
                "record_sequence": detail.record_sequence,
            }
        )

    def _render_trailer(self, trailer: TrailerRecord) -> str:
        return TRAILER_LAYOUT.render(
            {
                "record_count": trailer.record_count,
                "total_amount": trailer.total_amount_cents,
                "record_sequence": trailer.record_sequence,
            }
        )

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def decode(self, data: bytes) -> RemittanceFile:
        """Parse a generated file back into records (audit and inspection)."""
        try:
            text = data.decode(FILE_CHARSET)
        except UnicodeDecodeError:
            raise ValidationError("Remittance file is not valid Latin-1", field="file") from None

        lines = [line for line in text.split(RECORD_SEPARATOR) if line]
        if len(lines) < 3:
            raise ValidationError(
                f"Remittance file has {len(lines)} records, expected at least 3",
                field="file",
            )

        header_values = HEADER_LAYOUT.parse(lines[0])
        header = HeaderRecord(
            bank_code=header_values["bank_code"],
            bank_name=header_values["bank_name"],
            company_code=header_values["company_code"],
            company_name=header_values["company_name"],
            company_document=header_values["company_document"],
            generated_on=header_values["generated_on"],
            remittance_sequence=int(header_values["remittance_sequence"]),
            record_sequence=int(header_values["record_sequence"]),
        )

        details = []
        for line in lines[1:-1]:
            values = DETAIL_LAYOUT.parse(line)
            account_type = _ACCOUNT_TYPES_BY_CODE.get(values["account_type"])
            if account_type is None:
                raise ValidationError(
                    f"Unknown account type code {values['account_type']!r}",
                    field="account_type",
                )
            details.append(
                DetailRecord(
                    detail_number=int(values["detail_number"]),
                    agency=values["agency"],
                    agency_check_digit=values["agency_check_digit"],
                    account=values["account"],
                    account_check_digit=values["account_check_digit"],
                    bank_code=values["bank_code"],
                    account_type=account_type,
                    name=values["name"],
                    document=values["document"],
                    payment_date=values["payment_date"],
                    amount_cents=int(values["amount"]),
                    reference=values["reference"],
                    history=values["history"],
                    record_sequence=int(values["record_sequence"]),
                )
            )

        trailer_values = TRAILER_LAYOUT.parse(lines[-1])
        trailer = TrailerRecord(
            record_count=int(trailer_values["record_count"]),
            total_amount_cents=int(trailer_values["total_amount"]),
            record_sequence=int(trailer_values["record_sequence"]),
        )

        remittance = RemittanceFile(header=header, details=tuple(details), trailer=trailer)
        check_trailer(remittance)
        return remittance


def check_trailer(remittance: RemittanceFile) -> None:
    """Verify trailer totals and record sequencing against the details."""
    trailer = remittance.trailer
    if trailer is None:
        raise TrailerMismatchError("Remittance file has no trailer")

    expected_count = len(remittance.details) + 2
    expected_total = sum(d.amount_cents for d in remittance.details)
    errors: list[str] = []

    if trailer.record_count != expected_count:
        errors.append(f"record count {trailer.record_count} != {expected_count}")
    if trailer.total_amount_cents != expected_total:
        errors.append(f"total {trailer.total_amount_cents} != {expected_total}")
    if trailer.record_sequence != expected_count:
        errors.append(f"trailer sequence {trailer.record_sequence} != {expected_count}")
    if remittance.header.record_sequence != 1:
        errors.append(f"header sequence {remittance.header.record_sequence} != 1")
    for position, detail in enumerate(remittance.details, start=1):
        if detail.detail_number != position or detail.record_sequence != position + 1:
            errors.append(f"detail {position} is out of sequence")
            break

    if errors:
        raise TrailerMismatchError(
            "Remittance file is inconsistent: " + "; ".join(errors),
            {"errors": errors},
        )
