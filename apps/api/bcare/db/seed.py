"""Reference data seeding.

Ids are fixed so that tokens, fixtures and external systems can refer to
them (e.g. division 1 is always CXC). Seeding is idempotent: existing
rows are updated in place.
"""

import logging

from sqlalchemy import text
from sqlalchemy.orm import Session

from bcare.db.enums import (
    ActivityType,
    CustomerStatus,
    EmployeeStatus,
    Priority,
    SenderType,
    Source,
)
from bcare.db.models import (
    ActivityTypeRef,
    Channel,
    ComplaintCategory,
    ComplaintPolicy,
    CustomerStatusRef,
    Division,
    EmployeeStatusRef,
    PriorityRef,
    Role,
    SenderTypeRef,
    SourceRef,
    Terminal,
)

logger = logging.getLogger(__name__)


CUSTOMER_STATUSES = [
    (1, CustomerStatus.ACCEPTED.value, "Accepted"),
    (2, CustomerStatus.VERIFYING.value, "Verification"),
    (3, CustomerStatus.PROCESSING.value, "Processing"),
    (4, CustomerStatus.CLOSED.value, "Closed"),
    (5, CustomerStatus.DECLINED.value, "Declined"),
]

EMPLOYEE_STATUSES = [
    (1, EmployeeStatus.OPEN.value, "Open"),
    (2, EmployeeStatus.HANDLEDCXC.value, "Handled by CxC"),
    (3, EmployeeStatus.ESCALATED.value, "Escalated"),
    (4, EmployeeStatus.CLOSED.value, "Closed"),
    (5, EmployeeStatus.DECLINED.value, "Declined"),
    (6, EmployeeStatus.DONE_BY_UIC.value, "Done by UIC"),
]

PRIORITIES = [
    (1, Priority.CRITICAL.value, "Critical"),
    (2, Priority.HIGH.value, "High"),
    (3, Priority.REGULAR.value, "Regular"),
]

SOURCES = [
    (1, Source.CONTACT_CENTER.value, "Contact Center"),
    (2, Source.CHATBOT.value, "Chatbot"),
    (3, Source.SOSMED.value, "Sosial Media"),
]

ACTIVITY_TYPES = [
    (1, ActivityType.COMMENT.value, "Comment"),
    (2, ActivityType.STATUS_CHANGE.value, "Status Change"),
    (3, ActivityType.ATTACHMENT.value, "Attachment"),
    (4, ActivityType.DELETE.value, "Ticket Deletion"),
    (5, ActivityType.EMAIL_SENT.value, "Email Sent"),
]

SENDER_TYPES = [
    (1, SenderType.CUSTOMER.value, "Customer"),
    (2, SenderType.EMPLOYEE.value, "Employee"),
    (3, SenderType.SYSTEM.value, "System"),
]

ROLES = [
    (1, "AGENT_CXC", "CX Communication Agent"),
    (2, "ASST_DGO", "Assistant DGO"),
    (3, "ASST_TBS", "Assistant TBS"),
]

DIVISIONS = [
    (1, "CXC", "CX Communication"),
    (2, "BCC", "BCC Customer Care"),
    (3, "OPR", "Divisi OPR"),
    (4, "TBS", "Divisi TBS"),
    (5, "UIC1", "DGO USER 1"),
    (6, "UIC3", "DGO USER 3"),
    (7, "UIC6", "DGO USER 6"),
    (8, "UIC7", "DGO USER 7"),
    (9, "UIC8", "DGO USER 8"),
    (10, "UIC10", "DGO USER 10"),
]

CHANNELS = [
    (1, "ATM", "Automated Teller Machine"),
    (2, "TAPCASH", "BNI Tapcash"),
    (3, "CRM", "Cash Recycling Machine"),
    (4, "DISPUTE_DEBIT", "DISPUTE KARTU DEBIT"),
    (5, "IBANK", "Internet Banking"),
    (6, "MBANK", "Mobile Banking"),
    (7, "MTUNAI", "Mobile Tunai"),
    (8, "MTUNAI_ALFAMART", "Mobile Tunai Alfamart"),
    (9, "QRIS_DEBIT", "QRIS Kartu Debit"),
]

COMPLAINT_CATEGORIES = [
    (1, "2ND_CHARGEBACK", "2nd Chargeback"),
    (2, "2ND_CHARGEBACK_QRIS_DEBIT", "2nd Chargeback QRIS Debit"),
    (3, "BI_FAST_BILATERAL", "BI-FAST Bilateral (Refund, salah/batal transfer, rek terdebet > 1x)"),
    (4, "BI_FAST_DANA_TIDAK_MASUK", "BI-FAST Dana Tidak Masuk ke Rek Tujuan"),
    (5, "BI_FAST_GAGAL_HAPUS_AKUN", "BI-FAST Gagal Hapus Akun"),
    (6, "BI_FAST_GAGAL_MIGRASI_AKUN", "BI-FAST Gagal Migrasi Akun"),
    (7, "BI_FAST_GAGAL_SUSPEND_AKUN", "BI-FAST Gagal Suspend Akun"),
    (8, "BI_FAST_GAGAL_UPDATE_AKUN", "BI-FAST Gagal Update Akun"),
    (9, "DISPUTE", "Dispute"),
    (10, "DISPUTE_QRIS_KARTU_DEBIT", "Dispute QRIS Kartu Debit"),
    (11, "MOBILE_TUNAI", "Mobile Tunai"),
    (12, "MOBILE_TUNAI_ALFAMART", "Mobile Tunai Alfamart"),
    (23, "PERMINTAAN_CCTV_ATM_BNI", "Permintaan CCTV ATM BNI"),
    (24, "SETOR_TUNAI_DI_MESIN_ATM_CRM", "Setor Tunai Di Mesin ATM CRM"),
    (30, "TARIK_TUNAI_DI_MESIN_ATM_BNI", "Tarik Tunai Di Mesin ATM BNI"),
    (40, "TRANSFER_ANTAR_REKENING_BNI", "Transfer Antar Rekening BNI"),
]

TERMINALS = [
    (1, "ATM001", "ATM", "Jakarta Pusat", 1),
    (2, "ATM002", "ATM", "Bandung Dago", 1),
    (3, "CRM101", "CRM", "Surabaya Darmo", 3),
]

SAMPLE_POLICIES = [
    (1, "COMPLAINT", 6, 5, 1, 9,
     "Kendala yang dialami nasabah saat melakukan Hapus akun di menu Pengaturan BI-FAST"),
    (2, "COMPLAINT", 1, 30, 3, 3, "Tarik tunai di mesin ATM BNI, uang tidak keluar"),
    (3, "COMPLAINT", 3, 24, 2, 3, "Setor tunai di mesin CRM tidak masuk ke rekening"),
    (4, "COMPLAINT", 6, 40, 1, 4, "Transfer antar rekening BNI gagal namun saldo terdebet"),
]


def _upsert_lookup(db: Session, model, rows: list[tuple[int, str, str]]) -> int:
    written = 0
    for row_id, code, name in rows:
        row = db.get(model, row_id)
        if row is None:
            db.add(model(id=row_id, code=code, name=name))
            written += 1
        elif row.code != code or row.name != name:
            row.code = code
            row.name = name
            written += 1
    return written


def _sync_sequences(db: Session, tables: list[str]) -> None:
    """Advance Postgres id sequences past explicitly inserted ids."""
    if db.get_bind().dialect.name != "postgresql":
        return
    for table in tables:
        db.execute(
            text(
                f"SELECT setval(pg_get_serial_sequence('{table}', 'id'), "
                f"COALESCE(MAX(id), 1)) FROM {table}"
            )
        )


def seed_reference_data(db: Session, *, include_policies: bool = False) -> int:
    """
    Insert or refresh all reference tables.

    Returns the number of rows inserted or changed.
    """
    written = 0
    for model, rows in (
        (CustomerStatusRef, CUSTOMER_STATUSES),
        (EmployeeStatusRef, EMPLOYEE_STATUSES),
        (PriorityRef, PRIORITIES),
        (SourceRef, SOURCES),
        (ActivityTypeRef, ACTIVITY_TYPES),
        (SenderTypeRef, SENDER_TYPES),
        (Role, ROLES),
        (Division, DIVISIONS),
        (Channel, CHANNELS),
    ):
        written += _upsert_lookup(db, model, rows)

    for row_id, code, name in COMPLAINT_CATEGORIES:
        category = db.get(ComplaintCategory, row_id)
        if category is None:
            db.add(ComplaintCategory(id=row_id, complaint_code=code, complaint_name=name))
            written += 1

    db.flush()

    for row_id, code, terminal_type, location, channel_id in TERMINALS:
        if db.get(Terminal, row_id) is None:
            db.add(
                Terminal(
                    id=row_id,
                    terminal_code=code,
                    terminal_type=terminal_type,
                    location=location,
                    channel_id=channel_id,
                )
            )
            written += 1

    if include_policies:
        for row_id, service, channel_id, complaint_id, sla, uic_id, description in SAMPLE_POLICIES:
            if db.get(ComplaintPolicy, row_id) is None:
                db.add(
                    ComplaintPolicy(
                        id=row_id,
                        service=service,
                        channel_id=channel_id,
                        complaint_id=complaint_id,
                        sla=sla,
                        uic_id=uic_id,
                        description=description,
                    )
                )
                written += 1

    _sync_sequences(
        db,
        [
            "channels",
            "complaint_categories",
            "complaint_policies",
            "divisions",
            "roles",
            "terminals",
        ],
    )
    db.commit()
    logger.info("Reference data seeded (%s rows written)", written)
    return written
