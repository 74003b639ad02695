"""
Fonctions utilitaires partagées dans le projet libsync.

- utc_now : horodatage UTC avec fuseau
- as_utc : rattache le fuseau UTC à une date relue depuis SQLite
- fts_prefix_query : construction d'une requête FTS5 préfixe sur les titres
- fts_token_prefixes_query : présélection FTS5 pour la recherche approximative
- format_size : affichage lisible d'une taille en octets
"""

import re
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Retourne l'heure UTC courante, avec fuseau."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """
    Rattache le fuseau UTC à une date relue en base.

    SQLite ne conserve pas le fuseau : les colonnes DateTime(timezone=True)
    reviennent naïves alors qu'elles ont été écrites en UTC.
    """
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def fts_prefix_query(query: str) -> str:
    """
    Construit une requête FTS5 de préfixe limitée aux colonnes de titre.

    Les guillemets de la saisie sont doubles (échappement FTS5) : la requête
    utilisateur est toujours traitée comme une phrase.

    Example:
        fts_prefix_query('oppen') -> '{title original_title} : "oppen"*'
    """
    escaped = query.strip().replace('"', '""')
    return f'{{title original_title}} : "{escaped}"*'


def format_size(size_bytes: int) -> str:
    """Formate une taille en octets (ex: 1536 -> '1.5 Ko')."""
    size = float(size_bytes)
    for unit in ("o", "Ko", "Mo", "Go"):
        if size < 1024 or unit == "Go":
            return f"{size:.0f} {unit}" if unit == "o" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} Go"


def fts_token_prefixes_query(
    query: str, columns: tuple[str, ...], prefix_length: int = 3
) -> str | None:
    """
    Construit une requête FTS5 large : OU des débuts de chaque mot saisi.

    Sert à présélectionner les candidats de la recherche approximative : une
    faute de frappe touche rarement les premières lettres d'un mot.

    Example:
        fts_token_prefixes_query("Interstelar Nolan", ("title",))
        -> '{title} : ("int"* OR "nol"*)'
    """
    prefixes = []
    for token in re.findall(r"\w+", query.lower()):
        if len(token) < 2:
            continue
        prefix = token[:prefix_length]
        if prefix not in prefixes:
            prefixes.append(prefix)
    if not prefixes:
        return None
    terms = " OR ".join(f'"{p}"*' for p in prefixes)
    return f"{{{' '.join(columns)}}} : ({terms})"
