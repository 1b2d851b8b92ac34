"""
Patrones LIKE para busquedas por texto libre.
"""

LIKE_ESCAPE = "\\"


def escape_like(text: str) -> str:
    """Escapa `%`, `_` y el caracter de escape para que matcheen literal."""
    return (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", f"{LIKE_ESCAPE}%")
        .replace("_", f"{LIKE_ESCAPE}_")
    )


def contains_pattern(text: str) -> str:
    """Patron `%texto%` con el texto escapado. Usar con escape=LIKE_ESCAPE."""
    return f"%{escape_like(text)}%"
