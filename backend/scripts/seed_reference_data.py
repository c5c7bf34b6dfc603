#!/usr/bin/env python
"""Idempotent seed script for printers, shipping companies and the first admin.

Usage:
    python backend/scripts/seed_reference_data.py              # seed normally
    python backend/scripts/seed_reference_data.py --dry-run    # run logic then rollback (no DB changes)
    python backend/scripts/seed_reference_data.py --show       # print directory contents after seeding
"""
from __future__ import annotations
import os, sys, argparse, textwrap
from sqlalchemy import select, text

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from bookflow import create_app, get_db  # type: ignore
from bookflow.domain import ShippingType, UserRole, new_id
from bookflow.models.user import Base, User
from bookflow.models.printer import Printer
from bookflow.models.shipping_company import ShippingCompany
import bookflow.models.order  # noqa: F401
import bookflow.models.ledger  # noqa: F401
import bookflow.models.audit  # noqa: F401

PRINTERS = ('Cairo Modern Printing', 'Alexandria Press')
SHIPPING_COMPANIES = (
    ('Aramex', ShippingType.INTERNATIONAL),
    ('DHL', ShippingType.INTERNATIONAL),
    ('Bosta', ShippingType.DOMESTIC),
    ('Elma3yar', ShippingType.DOMESTIC),
)


def ensure_printers(session):
    existing = set(session.execute(select(Printer.name)).scalars().all())
    created = 0
    for name in PRINTERS:
        if name not in existing:
            session.add(Printer(id=new_id(), name=name, story_rate=None))
            created += 1
    return created


def ensure_shipping_companies(session):
    existing = {(c.name, c.type) for c in session.execute(select(ShippingCompany)).scalars().all()}
    created = 0
    for name, kind in SHIPPING_COMPANIES:
        if (name, kind.value) not in existing:
            session.add(ShippingCompany(id=new_id(), name=name, type=kind.value))
            created += 1
    return created


def ensure_initial_admin(session):
    admin_email = os.getenv('SEED_ADMIN_EMAIL', 'admin@example.com').lower()
    existing_admin = session.execute(select(User).where(User.email == admin_email)).scalar_one_or_none()
    if existing_admin:
        return 0
    user = User(id=new_id(), name='Admin', email=admin_email, role=UserRole.ADMIN.value, phone='')
    user.set_password(os.getenv('SEED_ADMIN_PASSWORD', 'ChangeMe123!'))
    session.add(user)
    print(f"[INFO] Created initial admin user {admin_email} with temporary password.")
    return 1


def print_directory(session):
    print('Printers:')
    for p in session.execute(select(Printer).order_by(Printer.name)).scalars():
        print(f"  {p.name} (story_rate={p.story_rate})")
    print('Shipping companies:')
    for c in session.execute(select(ShippingCompany).order_by(ShippingCompany.type, ShippingCompany.name)).scalars():
        print(f"  {c.type.ljust(13)} {c.name}")


def parse_args():
    p = argparse.ArgumentParser(
        description="Seed reference data for the order workflow",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_reference_data.py\n  dry run: seed_reference_data.py --dry-run\n""")
    )
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    p.add_argument('--show', action='store_true', help='Print printers and shipping companies after seeding')
    return p.parse_args()


def main():
    args = parse_args()
    app = create_app()
    with app.app_context():
        session = get_db()
        try:
            session.execute(text('SELECT 1 FROM printers LIMIT 1'))
        except Exception:
            # Bootstrap only; prefer alembic upgrade
            session.rollback()
            Base.metadata.create_all(session.get_bind())
        finally:
            session.commit()

    with app.app_context():
        session = get_db()
        created_p = ensure_printers(session)
        created_c = ensure_shipping_companies(session)
        created_a = ensure_initial_admin(session)
        session.flush()
        if args.show:
            print_directory(session)
        if args.dry_run:
            session.rollback()
            print(f"[DRY-RUN] (rolled back) Printers: {created_p}, Shipping companies: {created_c}, Admins: {created_a}")
        else:
            session.commit()
            print(f"[DONE] Printers created: {created_p}, Shipping companies created: {created_c}, Admins created: {created_a}")


if __name__ == '__main__':
    main()
