"""
Editorial actions and parsers for their output.

The platform writes in French, so prompts are French and the title parser
filters French meta-commentary ("Voici trois titres...").
"""

import re
from enum import Enum
from typing import Any

MAX_TITLE_SUGGESTIONS = 5
MAX_TAG_SUGGESTIONS = 10
MAX_TAG_LENGTH = 30
COVER_EXCERPT_LENGTH = 500
COVER_WIDTH = 1200
COVER_HEIGHT = 630  # Open Graph image size


class AIAction(str, Enum):
    IMPROVE = "improve"
    SIMPLIFY = "simplify"
    EXPAND = "expand"
    TRANSLATE_EN = "translate_en"
    TRANSLATE_FR = "translate_fr"
    SUGGEST_TITLE = "suggest_title"
    SUGGEST_TAGS = "suggest_tags"
    SUGGEST_EXCERPT = "suggest_excerpt"
    CONTINUE = "continue"
    FIX_GRAMMAR = "fix_grammar"


SYSTEM_PROMPTS: dict[AIAction, str] = {
    AIAction.IMPROVE: """Tu es un assistant éditorial expert. Améliore le texte fourni en:
- Corrigeant les fautes d'orthographe et de grammaire
- Améliorant la clarté et la fluidité
- Conservant le ton et le style original
- Ne modifiant pas le sens

Réponds UNIQUEMENT avec le texte amélioré, sans explication.""",
    AIAction.SIMPLIFY: """Tu es un assistant éditorial expert. Simplifie le texte fourni en:
- Utilisant des mots plus simples
- Raccourcissant les phrases complexes
- Rendant le texte accessible à tous
- Conservant le message principal

Réponds UNIQUEMENT avec le texte simplifié, sans explication.""",
    AIAction.EXPAND: """Tu es un assistant éditorial expert. Développe le texte fourni en:
- Ajoutant des détails pertinents
- Développant les idées
- Ajoutant des exemples si approprié
- Gardant un style cohérent

Réponds UNIQUEMENT avec le texte développé, sans explication.""",
    AIAction.TRANSLATE_EN: """Tu es un traducteur expert. Traduis le texte suivant en anglais:
- Utilise un anglais naturel et idiomatique
- Conserve le ton et le style
- Adapte les expressions culturelles

Réponds UNIQUEMENT avec la traduction, sans explication.""",
    AIAction.TRANSLATE_FR: """Tu es un traducteur expert. Traduis le texte suivant en français:
- Utilise un français naturel et idiomatique
- Conserve le ton et le style
- Adapte les expressions culturelles

Réponds UNIQUEMENT avec la traduction, sans explication.""",
    AIAction.SUGGEST_TITLE: """Suggère 3 titres courts pour cet article de blog.
Format:
1. [titre clair]
2. [titre avec question]
3. [titre accrocheur]

Réponds UNIQUEMENT avec les 3 titres numérotés.""",
    AIAction.SUGGEST_TAGS: """Liste 5-8 tags pour cet article.
Règles: mots courts, minuscules, séparés par virgules.
Exemple: javascript, react, tutorial, web

Réponds UNIQUEMENT avec les tags séparés par virgules.""",
    AIAction.SUGGEST_EXCERPT: """Écris UN SEUL paragraphe de 2 phrases maximum pour résumer cet article.
C'est pour la meta description SEO (150 caractères max).

IMPORTANT: Ne pas réécrire l'article, juste un court résumé accrocheur.

Réponds UNIQUEMENT avec le résumé court.""",
    AIAction.CONTINUE: """Tu es un assistant d'écriture expert. Continue le texte fourni de manière naturelle:
- Maintiens le style et le ton
- Développe les idées de manière logique
- Reste cohérent avec le contexte

Réponds UNIQUEMENT avec la continuation, sans inclure le texte original.""",
    AIAction.FIX_GRAMMAR: """Tu es un correcteur orthographique et grammatical expert.
Corrige uniquement les fautes d'orthographe et de grammaire sans modifier le style ni le sens.

Réponds UNIQUEMENT avec le texte corrigé, sans explication.""",
}

CUSTOM_PROMPT_SYSTEM = """Tu es un assistant éditorial expert pour un blog tech.
Tu aides à la rédaction, correction et amélioration d'articles.
Réponds de manière concise et directe."""

TEST_IMAGE_PROMPT = (
    "A simple abstract geometric pattern in blue and purple tones, minimalist style"
)

# Lines containing these are the model talking about its answer, not titles
META_COMMENTARY_MARKERS = ("voici", "titre")

_TITLE_LINE = re.compile(r"^\s*(?:\d+[.)]\s*|[-*•]\s*)?(.+)")
_MARKDOWN_CHARS = re.compile(r"[#*`\[\]]")


def build_action_messages(action: AIAction | str, text: str) -> list[dict[str, Any]]:
    action = AIAction(action)
    return [
        {"role": "system", "content": SYSTEM_PROMPTS[action]},
        {"role": "user", "content": text},
    ]


def build_custom_messages(user_prompt: str, context: str) -> list[dict[str, Any]]:
    if context:
        content = (
            f"Contexte (texte sélectionné ou article):\n---\n{context}\n---\n\n"
            f"Demande: {user_prompt}"
        )
    else:
        content = user_prompt
    return [
        {"role": "system", "content": CUSTOM_PROMPT_SYSTEM},
        {"role": "user", "content": content},
    ]


def build_cover_prompt(title: str, content: str) -> str:
    """Prompt for an article cover image: markdown stripped, body truncated"""
    excerpt = _MARKDOWN_CHARS.sub("", content[:COVER_EXCERPT_LENGTH]).strip()
    return (
        f'Create a professional blog cover image for an article titled "{title}". '
        f"The article is about: {excerpt}. "
        "Style: modern, clean, tech-focused, subtle gradients, abstract shapes."
    )


def parse_title_suggestions(response: str) -> list[str]:
    """Turn a numbered or bulleted list of titles into plain strings."""
    titles: list[str] = []

    for line in response.split("\n"):
        if not line.strip():
            continue

        match = _TITLE_LINE.match(line)
        if not match:
            continue

        title = match.group(1).strip()
        lowered = title.lower()
        if title and not any(marker in lowered for marker in META_COMMENTARY_MARKERS):
            titles.append(title)

    return titles[:MAX_TITLE_SUGGESTIONS]


def parse_tag_suggestions(response: str) -> list[str]:
    tags = (tag.strip().lower() for tag in response.split(","))
    return [tag for tag in tags if 0 < len(tag) < MAX_TAG_LENGTH][:MAX_TAG_SUGGESTIONS]
