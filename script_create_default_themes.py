"""Cria os temas embutidos que ainda não existem no banco."""
import sys
from pathlib import Path

from sqlmodel import Session

# Garante import do app/ a partir da raiz do projeto.
PROJECT_ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(PROJECT_ROOT))

from app.db.session import engine  # noqa: E402
from app.services.theme_service import ensure_default_themes  # noqa: E402


def main() -> int:
    with Session(engine) as session:
        created = ensure_default_themes(session)
        for theme in created:
            print(f"OK: tema {theme.slug} (id={theme.id})")
    if not created:
        print("Todos os temas padrão já existem.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
