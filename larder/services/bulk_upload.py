"""
Bulk inflow upload from delimited text.

Pipeline:
    1. detect delimiter, check required headers
    2. parse rows (per-row validation)
    3. resolve branch/item/UOM by name, auto-create suppliers
    4. drop duplicate (branch, item, batch) rows
    5. check every row converts to its item's base unit
    6. one inflow per branch, each in its own transaction
    7. write the audit trail for rows that did not become stock

Row problems never raise: they are collected as FailedUpload records and
the rest of the upload proceeds.

Usage:
    result = BulkInflowUpload.upload(tenant, request.FILES['file'].read())
    return JsonResponse(result.as_dict())
"""

import csv
import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from io import StringIO

from django.conf import settings
from django.db import DatabaseError
from django.db.models.functions import Lower
from django.utils import timezone
from django.utils.dateparse import parse_date

from larder.conf import larder_settings
from larder.exceptions import LedgerError, NotFound
from larder.models.enums import InflowSource, UploadStatus
from larder.models.inflow import BulkUploadLog
from larder.models.item import InventoryItem
from larder.models.tenancy import Branch, Supplier
from larder.models.uom import UnitOfMeasure
from larder.quantities import display, money, qty
from larder.services.conversions import UnitConversions
from larder.services.inflows import InflowLineInput, Inflows
from larder.services.numbering import document_number, random_code

logger = logging.getLogger('larder')

DELIMITERS = ('\t', '|', ',')

# field -> (label, accepted normalized headers)
COLUMNS = {
    'branch': ('Branch Name', ('branchname',)),
    'item': ('Inventory Item Name', ('inventoryitemname',)),
    'supplier': ('Supplier Name', ('suppliername', 'supplier')),
    'uom': ('UOM', ('uom',)),
    'quantity': ('Quantity', ('quantity',)),
    'cost': ('Cost Per Unit', ('costperunit',)),
    'received_at': ('Received At', ('receivedat', 'receiveddate')),
    'invoice_number': ('Invoice Number', ('invoicenumber',)),
    'batch_number': ('Batch Number', ('batchnumber',)),
    'expiry_date': ('Expiry Date', ('expirydate',)),
    'notes': ('Notes', ('notes',)),
}
REQUIRED = ('branch', 'item', 'uom', 'quantity', 'cost')

TEMPLATE_HEADERS = [
    'Branch Name',
    'Inventory Item Name',
    'Supplier Name',
    'UOM',
    'Quantity',
    'Cost Per Unit',
    'Received At (optional, YYYY-MM-DD)',
    'Invoice Number (optional)',
    'Batch Number (optional)',
    'Expiry Date (optional, YYYY-MM-DD)',
    'Notes (optional)',
]
TEMPLATE_SAMPLE = [
    'Main Kitchen', 'Tomatoes', 'Fresh Farms', 'kg', '25', '1200',
    '2024-06-01', '', 'TOM-0601', '2024-06-10', 'Morning delivery',
]


def normalize_header(cell: str) -> str:
    """'Cost Per Unit' -> 'costperunit'"""
    return re.sub(r'[^a-z0-9]', '', cell.lower())


def _column_index(headers: list[str], accepted: tuple[str, ...]) -> int | None:
    for index, header in enumerate(headers):
        for key in accepted:
            # 'Expiry Date (optional, YYYY-MM-DD)' -> 'expirydateoptionalyyyymmdd'
            if header == key or header.startswith(key + 'optional'):
                return index
    return None


@dataclass
class UploadRow:
    line_number: int
    data: dict[str, str]
    branch_name: str = ''
    item_name: str = ''
    uom_name: str = ''
    supplier_name: str = ''
    quantity: Decimal | None = None
    unit_cost: Decimal | None = None
    received_at: date | None = None
    invoice_number: str = ''
    batch_number: str = ''
    expiry_date: date | None = None
    notes: str = ''
    errors: list[str] = field(default_factory=list)

    branch: Branch | None = None
    item: InventoryItem | None = None
    uom: UnitOfMeasure | None = None
    supplier: Supplier | None = None

    @property
    def duplicate_key(self) -> tuple:
        return (self.branch.pk, self.item.pk, self.batch_number.lower() or 'no-batch')


@dataclass
class FailedUpload:
    line_number: int
    row_data: dict[str, str]
    errors: list[str]
    status: str = UploadStatus.FAILED
    branch_id: int | None = field(default=None, repr=False)

    def as_dict(self) -> dict:
        return {
            'lineNumber': self.line_number,
            'rowData': self.row_data,
            'errors': self.errors,
            'status': str(self.status),
        }


@dataclass
class BulkUploadResult:
    success: int = 0
    errors: list[str] = field(default_factory=list)
    failed_uploads: list[FailedUpload] = field(default_factory=list)
    duplicate_skipped: int = 0
    inflows: list = field(default_factory=list)
    upload_tag: str = ''
    session_id: str = ''

    def as_dict(self) -> dict:
        return {
            'success': self.success,
            'errors': self.errors,
            'failedUploads': [f.as_dict() for f in self.failed_uploads],
            'duplicateSkipped': self.duplicate_skipped,
            'inflows': [inflow.pk for inflow in self.inflows],
            'uploadTag': self.upload_tag,
        }


class BulkInflowUpload:
    """Bulk goods receipt from CSV, pipe- or tab-separated text."""

    @staticmethod
    def template() -> str:
        """Tab-separated header row and one sample row."""
        out = StringIO()
        writer = csv.writer(out, delimiter='\t', lineterminator='\n')
        writer.writerow(TEMPLATE_HEADERS)
        writer.writerow(TEMPLATE_SAMPLE)
        return out.getvalue()

    @staticmethod
    def detect_delimiter(header_line: str) -> str:
        """First of tab, pipe, comma present in the header; comma otherwise."""
        for delimiter in DELIMITERS:
            if delimiter in header_line:
                return delimiter
        return ','

    @classmethod
    def _records(cls, content: str) -> list[tuple[int, list[str]]]:
        """
        Detect the delimiter and read every non-blank record.

        Each record carries the file line it starts on (1-based), so quoted
        cells spanning lines and blank lines keep the numbering honest.
        """
        first = next((line for line in content.splitlines() if line.strip()), '')
        delimiter = cls.detect_delimiter(first)

        reader = csv.reader(StringIO(content, newline=''), delimiter=delimiter)
        records = []
        start = 1
        for cells in reader:
            if any(cell.strip() for cell in cells):
                records.append((start, cells))
            start = reader.line_num + 1
        return records

    @classmethod
    def upload(cls, tenant, content, user='') -> BulkUploadResult:
        """
        Import every usable row of `content` (str or bytes).

        `success` counts the rows that became stock.
        """
        result = BulkUploadResult(session_id=uuid.uuid4().hex, upload_tag=random_code(6))

        if isinstance(content, bytes):
            content = content.decode('utf-8-sig')
        records = cls._records((content or '').lstrip('\ufeff'))
        if len(records) < 2:
            result.errors.append('CSV file is empty')
            return result

        header = [cell.strip() for cell in records[0][1]]
        normalized = [normalize_header(cell) for cell in header]
        columns = {name: _column_index(normalized, accepted) for name, (_, accepted) in COLUMNS.items()}

        missing = [COLUMNS[name][0] for name in REQUIRED if columns[name] is None]
        if missing:
            result.errors.append(f"Missing required columns: {', '.join(missing)}")
            return result

        rows = []
        for line_number, cells in records[1:]:
            row = cls._parse_row(line_number, header, cells, columns)
            if row.errors:
                cls._reject(result, row)
            else:
                rows.append(row)

        rows = cls._resolve(tenant, rows, result)
        rows = cls._drop_duplicates(rows, result)
        rows = cls._check_conversions(tenant, rows, result)
        created = cls._create_inflows(tenant, rows, result, user)
        cls._write_log(tenant, result, created)

        logger.info(
            "bulk_upload.finished",
            extra={
                "tenant": tenant.pk,
                "session": result.session_id,
                "upload_tag": result.upload_tag,
                "imported": result.success,
                "inflows": len(result.inflows),
                "rejected": len(result.failed_uploads),
                "duplicates": result.duplicate_skipped,
            },
        )
        return result

    # ══════════════════════════════════════════════════════════════
    # STAGES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _parse_row(cls, line_number, header, cells, columns) -> UploadRow:
        def cell(name):
            index = columns[name]
            if index is None or index >= len(cells):
                return ''
            return cells[index].strip()

        data = {
            label: (cells[i].strip() if i < len(cells) else '')
            for i, label in enumerate(header)
        }
        row = UploadRow(
            line_number=line_number,
            data=data,
            branch_name=cell('branch'),
            item_name=cell('item'),
            uom_name=cell('uom'),
            supplier_name=cell('supplier'),
            invoice_number=cell('invoice_number'),
            batch_number=cell('batch_number'),
            notes=cell('notes'),
        )

        for name in REQUIRED:
            if not cell(name):
                row.errors.append(f"{COLUMNS[name][0]} is required")

        if cell('quantity'):
            try:
                row.quantity = qty(cell('quantity'))
            except ValueError:
                row.quantity = None
            if row.quantity is None or row.quantity <= 0:
                row.errors.append('Quantity must be a positive number')

        if cell('cost'):
            try:
                row.unit_cost = money(cell('cost'))
            except ValueError:
                row.unit_cost = None
            if row.unit_cost is None or row.unit_cost <= 0:
                row.errors.append('Cost Per Unit must be a positive number')

        for name in ('received_at', 'expiry_date'):
            value = cell(name)
            if not value:
                continue
            try:
                parsed = parse_date(value)
            except ValueError:
                parsed = None
            if parsed is None:
                row.errors.append(f"{COLUMNS[name][0]} must be a valid date (YYYY-MM-DD)")
            else:
                setattr(row, name, parsed)

        return row

    @staticmethod
    def _by_name(queryset, names, field_name='name') -> dict:
        wanted = {name.lower() for name in names if name}
        if not wanted:
            return {}
        matches = queryset.annotate(lookup_key=Lower(field_name)).filter(lookup_key__in=wanted)
        return {obj.lookup_key: obj for obj in matches}

    @classmethod
    def _resolve(cls, tenant, rows, result) -> list[UploadRow]:
        """Case-insensitive name lookups, one query per entity type."""
        branches = cls._by_name(Branch.objects.filter(tenant=tenant), {r.branch_name for r in rows})
        items = cls._by_name(
            InventoryItem.objects.filter(tenant=tenant).select_related('base_uom'),
            {r.item_name for r in rows},
        )
        uom_names = {r.uom_name for r in rows}
        uoms = cls._by_name(UnitOfMeasure.objects.filter(tenant=tenant), uom_names, 'abbreviation')
        uoms.update(cls._by_name(UnitOfMeasure.objects.filter(tenant=tenant), uom_names))
        suppliers = cls._by_name(Supplier.objects.filter(tenant=tenant), {r.supplier_name for r in rows})

        resolved = []
        for row in rows:
            row.branch = branches.get(row.branch_name.lower())
            row.item = items.get(row.item_name.lower())
            row.uom = uoms.get(row.uom_name.lower())
            if row.branch is None:
                row.errors.append(f"Branch '{row.branch_name}' not found")
            if row.item is None:
                row.errors.append(f"Inventory item '{row.item_name}' not found")
            if row.uom is None:
                row.errors.append(f"UOM '{row.uom_name}' not found")
            if row.errors:
                cls._reject(result, row)
                continue

            if row.supplier_name:
                key = row.supplier_name.lower()
                if key not in suppliers:
                    suppliers[key] = Supplier.objects.create(tenant=tenant, name=row.supplier_name)
                    logger.info(
                        "supplier.auto_created",
                        extra={"tenant": tenant.pk, "supplier": row.supplier_name, "line": row.line_number},
                    )
                row.supplier = suppliers[key]
            resolved.append(row)
        return resolved

    @classmethod
    def _drop_duplicates(cls, rows, result) -> list[UploadRow]:
        seen: dict[tuple, int] = {}
        kept = []
        for row in rows:
            first = seen.get(row.duplicate_key)
            if first is not None:
                row.errors.append(f"Duplicate of line {first} (same branch, item and batch number)")
                cls._reject(result, row, UploadStatus.SKIPPED)
                result.duplicate_skipped += 1
                continue
            seen[row.duplicate_key] = row.line_number
            kept.append(row)
        return kept

    @classmethod
    def _check_conversions(cls, tenant, rows, result) -> list[UploadRow]:
        convertible = []
        for row in rows:
            try:
                UnitConversions.to_base(tenant, row.item, row.quantity, row.uom)
            except NotFound:
                row.errors.append(
                    f"Cannot convert {display(row.quantity)} {row.uom.name} to "
                    f"{row.item.base_uom.name} for item {row.item.name}. "
                    "Please ensure a unit conversion exists."
                )
                cls._reject(result, row)
                continue
            convertible.append(row)
        return convertible

    @classmethod
    def _create_inflows(cls, tenant, rows, result, user) -> dict:
        """One inflow per branch. Returns {branch_pk: inflow}."""
        groups: dict[int, list[UploadRow]] = {}
        for row in rows:
            groups.setdefault(row.branch.pk, []).append(row)

        created = {}
        for branch_rows in groups.values():
            branch = branch_rows[0].branch
            supplier_ids = {row.supplier.pk if row.supplier else None for row in branch_rows}
            invoices = {row.invoice_number for row in branch_rows if row.invoice_number}
            received = next((row.received_at for row in branch_rows if row.received_at), None)
            notes = '; '.join(dict.fromkeys(row.notes for row in branch_rows if row.notes))

            lines = [
                InflowLineInput(
                    item=row.item,
                    uom=row.uom,
                    quantity=row.quantity,
                    unit_cost=row.unit_cost,
                    supplier=row.supplier,
                    batch_number=row.batch_number,
                    expiry_date=row.expiry_date,
                    notes=row.notes,
                )
                for row in branch_rows
            ]
            try:
                inflow = Inflows.create_inflow(
                    tenant,
                    lines,
                    branch=branch,
                    supplier=branch_rows[0].supplier if len(supplier_ids) == 1 else None,
                    received_date=cls._as_datetime(received),
                    invoice_number=invoices.pop() if len(invoices) == 1 else cls._invoice_number(branch),
                    notes=notes,
                    source=InflowSource.BULK,
                    upload_tag=result.upload_tag,
                    user=user,
                )
            except (LedgerError, DatabaseError) as exc:
                message = f"Failed to create inflow for branch {branch.name}: {exc}"
                result.errors.append(message)
                result.failed_uploads.append(FailedUpload(
                    line_number=0,
                    row_data={'branch': branch.name, 'lines': ', '.join(str(r.line_number) for r in branch_rows)},
                    errors=[message],
                    branch_id=branch.pk,
                ))
                logger.warning(
                    "bulk_upload.branch_failed",
                    extra={"tenant": tenant.pk, "branch": branch.pk, "error": str(exc)},
                )
                continue

            created[branch.pk] = inflow
            result.inflows.append(inflow)
            result.success += len(branch_rows)
        return created

    @classmethod
    def _write_log(cls, tenant, result, created) -> None:
        """Persist rejected rows, linked to their branch's inflow (else the first one)."""
        if not result.failed_uploads:
            return
        fallback = result.inflows[0] if result.inflows else None
        entries = [
            BulkUploadLog(
                tenant=tenant,
                inflow=created.get(failed.branch_id, fallback),
                session_id=result.session_id,
                line_number=failed.line_number,
                row_data=failed.row_data,
                errors=failed.errors,
                status=failed.status,
            )
            for failed in result.failed_uploads
        ]
        BulkUploadLog.objects.bulk_create(entries, batch_size=larder_settings.UPLOAD_LOG_CHUNK_SIZE)

    # ══════════════════════════════════════════════════════════════
    # HELPERS
    # ══════════════════════════════════════════════════════════════

    @staticmethod
    def _reject(result, row, status=UploadStatus.FAILED) -> None:
        result.failed_uploads.append(FailedUpload(
            line_number=row.line_number,
            row_data=row.data,
            errors=list(row.errors),
            status=status,
            branch_id=row.branch.pk if row.branch else None,
        ))

    @staticmethod
    def _invoice_number(branch) -> str:
        code = re.sub(r'[^A-Z0-9]', '', branch.name.upper())[:10] or 'BRANCH'
        return document_number('BULK', code, length=6)

    @staticmethod
    def _as_datetime(day):
        if day is None:
            return None
        moment = datetime.combine(day, time(12, 0))
        if settings.USE_TZ:
            moment = timezone.make_aware(moment)
        return moment
