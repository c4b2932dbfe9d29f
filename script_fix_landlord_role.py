"""
Promove uma conta existente a landlord.

Uso: python script_fix_landlord_role.py <email>
"""
import sys
from pathlib import Path

from sqlmodel import Session, select

# Garante import do app/ a partir da raiz do projeto.
PROJECT_ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(PROJECT_ROOT))

from app.db.session import engine  # noqa: E402
from app.model.account import Account, AccountRole  # noqa: E402
from app.model.base import utc_now  # noqa: E402


def main(argv: list[str]) -> int:
    if len(argv) != 2:
        print("Uso: python script_fix_landlord_role.py <email>")
        return 2
    email = argv[1].strip().lower()
    with Session(engine) as session:
        account = session.exec(select(Account).where(Account.email == email)).first()
        if not account:
            print(f"[ERROR] conta não encontrada: {email}")
            return 1
        if account.role == AccountRole.LANDLORD:
            print(f"ok: {email} já é landlord")
            return 0
        account.role = AccountRole.LANDLORD
        account.updated_at = utc_now()
        session.add(account)
        session.commit()
    print(f"ok: {email} agora é landlord")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
