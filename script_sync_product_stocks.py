"""
Reconcilia o estoque dos produtos com variantes (soma das variantes).

Uso: python script_sync_product_stocks.py [--tenant-id N]
"""
import argparse
import sys
from pathlib import Path

from sqlmodel import Session

# Garante import do app/ a partir da raiz do projeto.
PROJECT_ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(PROJECT_ROOT))

from app.db.session import engine  # noqa: E402
from app.services.inventory_service import sync_all_product_stocks  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Sincroniza o estoque dos produtos com variantes")
    parser.add_argument("--tenant-id", type=int, default=None, help="Somente esta loja (padrão: todas)")
    args = parser.parse_args()

    with Session(engine) as session:
        result = sync_all_product_stocks(session, tenant_id=args.tenant_id)
        session.commit()

    scope = f"tenant_id={args.tenant_id}" if args.tenant_id is not None else "todas as lojas"
    print(f"ok ({scope}): {result.products_checked} verificados, {result.products_updated} corrigidos")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
