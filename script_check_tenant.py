"""
Diagnóstico de uma loja pelo subdomínio: status, plano, admins, tema e uso.

Uso: python script_check_tenant.py <subdomain>
"""
import sys
from pathlib import Path

from sqlmodel import Session, select

# Garante import do app/ a partir da raiz do projeto.
PROJECT_ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(PROJECT_ROOT))

from app.db.session import engine  # noqa: E402
from app.lib.subdomain import normalize_subdomain  # noqa: E402
from app.model.account import Account  # noqa: E402
from app.model.membership import Membership  # noqa: E402
from app.model.price_plan import PricePlan  # noqa: E402
from app.model.theme import Theme  # noqa: E402
from app.services.subscription_service import days_until_expiry, get_tenant_usage  # noqa: E402
from app.services.tenant_service import ROOT_DOMAIN, get_tenant_by_subdomain  # noqa: E402
from app.services.theme_service import get_active_tenant_theme  # noqa: E402


def main(argv: list[str]) -> int:
    if len(argv) != 2:
        print("Uso: python script_check_tenant.py <subdomain>")
        return 2
    subdomain = normalize_subdomain(argv[1])
    problems = 0
    with Session(engine) as session:
        tenant = get_tenant_by_subdomain(session, subdomain)
        if not tenant:
            print(f"[ERROR] loja não encontrada: {subdomain}")
            return 1

        print(f"Loja: {tenant.name} (id={tenant.id}) -> {tenant.subdomain}.{ROOT_DOMAIN}")
        print(f"   status={tenant.status.value} custom_domain={tenant.custom_domain or '-'}")

        plan = session.get(PricePlan, tenant.plan_id) if tenant.plan_id else None
        if plan:
            print(f"   plano={plan.name} expira em {days_until_expiry(tenant)} dia(s)")
        else:
            problems += 1
            print("   [WARN] sem plano de assinatura")

        rows = session.exec(
            select(Membership, Account).join(Account, Account.id == Membership.account_id).where(
                Membership.tenant_id == tenant.id
            )
        ).all()
        for membership, account in rows:
            print(f"   membro: {account.email} role={membership.role.value} status={membership.status.value}")
        if not rows:
            problems += 1
            print("   [ERROR] nenhum membro")

        tenant_theme = get_active_tenant_theme(session, tenant.id)
        if tenant_theme:
            theme = session.get(Theme, tenant_theme.theme_id)
            print(f"   tema ativo: {theme.slug if theme else tenant_theme.theme_id}")
        else:
            problems += 1
            print("   [WARN] nenhum tema ativo")

        for resource, usage in get_tenant_usage(session, tenant).items():
            print(f"   uso {resource}: {usage['used']}/{usage['limit'] if usage['limit'] is not None else '∞'}")

    if problems:
        print(f"problems={problems}")
        return 1
    print("ok")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
