"""Cria os planos padrão (Basic / Pro / Enterprise, 14 dias de trial). Não faz nada se já existir plano."""
import sys
from pathlib import Path

from sqlmodel import Session

# Garante import do app/ a partir da raiz do projeto.
PROJECT_ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(PROJECT_ROOT))

from app.db.session import engine  # noqa: E402
from app.services.subscription_service import seed_default_price_plans  # noqa: E402


def main() -> int:
    with Session(engine) as session:
        plans = seed_default_price_plans(session, trial_days=14)
    if not plans:
        print("Já existem planos cadastrados; nada a fazer.")
        return 0
    for plan in plans:
        print(f"OK: plano {plan.name} (id={plan.id}) - {plan.price}/mês, trial {plan.trial_days} dias")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
