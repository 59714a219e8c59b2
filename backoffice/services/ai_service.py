"""Chat-completion backed recipe suggestions and ingredient validation.

Both features fail open: without an API key, or whenever the completion call
or its parsing fails, callers receive an empty suggestion list or the keyword
validator verdict.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence

from openai import APIError

from backoffice.config.openai_client import AI_MODEL, get_ai_client
from backoffice.services.ingredient_validation import (
    check_name_length,
    quick_validate_ingredient_name,
    validation_result,
)
from backoffice.services.stock_status import days_until_expiry, is_expired

logger = logging.getLogger(__name__)

MAX_AI_RECIPES = 3
DEFAULT_COOKING_TIME = 30
DEFAULT_SERVINGS = 4
DEFAULT_REASON = "Receita sugerida com base nos ingredientes disponíveis"

RECIPE_SYSTEM_PROMPT = (
    "Você é um chef experiente especializado em criar receitas práticas e deliciosas. "
    "Sua resposta deve ser APENAS um array JSON válido, sem markdown, sem código, sem explicações. "
    "Comece diretamente com [ e termine com ]."
)

VALIDATION_SYSTEM_PROMPT = (
    "Você é um especialista em culinária e ingredientes comestíveis. Sua função é analisar se um nome "
    "representa um ingrediente comestível. Responda APENAS com JSON válido, sem markdown, sem código, "
    "sem texto adicional. Comece diretamente com { e termine com }."
)

RECIPE_PROMPT_TEMPLATE = """Você é um chef experiente. Sugira 3 receitas práticas e deliciosas baseadas nos ingredientes disponíveis.

INGREDIENTES DISPONÍVEIS: {available}

INGREDIENTES VENCENDO EM BREVE (priorizar usar): {expiring}

INGREDIENTES COM MUITO ESTOQUE (priorizar usar): {high_stock}

REQUISITOS:
- Use principalmente ingredientes que estão vencendo em breve
- Priorize ingredientes com muito estoque disponível
- Receitas devem ser práticas e rápidas de fazer
- Se faltar algum ingrediente, mencione como substituição opcional
- Retorne APENAS um array JSON válido, sem markdown, sem código, sem texto adicional

FORMATO DE RESPOSTA (retorne APENAS o array JSON):
[
  {{
    "name": "Nome da Receita",
    "description": "Breve descrição",
    "ingredients": ["ingrediente1", "ingrediente2"],
    "instructions": ["passo 1", "passo 2"],
    "cookingTime": 30,
    "servings": 4,
    "reason": "Por que essa receita foi sugerida (ex: usa tomate que vence em 2 dias)"
  }}
]"""

VALIDATION_PROMPT_TEMPLATE = """Você é um especialista em culinária, ingredientes de cozinha e alimentos comestíveis.

Analise cuidadosamente se "{name}" é um ingrediente comestível que pode ser usado em receitas de cozinha ou preparação de alimentos.

Considere:
- Ingredientes comestíveis: frutas, verduras, legumes, carnes, peixes, grãos, especiarias, condimentos, laticínios, etc.
- NÃO são ingredientes: móveis, utensílios, eletrônicos, roupas, ferramentas, produtos de limpeza, medicamentos, etc.
- Erros de digitação: se parecer um erro de digitação de um ingrediente válido, sugira a correção

Responda APENAS com um JSON válido no formato:
{{
  "isValid": true ou false,
  "reason": "explicação curta e clara em português",
  "suggestion": "sugestão de nome correto se houver erro de digitação (opcional, apenas se isValid for true)"
}}"""

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*")
_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")
_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


class AIResponseError(ValueError):
    """Raised when a completion cannot be turned into the expected JSON."""


async def get_ai_recipe_suggestions(
    ingredients: Sequence[Mapping[str, Any]],
    expiring: Sequence[Mapping[str, Any]],
    high_stock: Sequence[Mapping[str, Any]],
    *,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """Ask the model for up to three recipes; return [] when unavailable."""

    client = get_ai_client()
    if client is None:
        logger.info("AI key not configured, using static recipes")
        return []

    reference_day = today or date.today()
    prompt = build_recipe_prompt(ingredients, expiring, high_stock, reference_day)
    try:
        content = await asyncio.to_thread(
            _request_completion,
            RECIPE_SYSTEM_PROMPT,
            prompt,
            temperature=0.7,
            max_tokens=2000,
        )
        return parse_recipe_suggestions(content)
    except APIError as exc:  # pragma: no cover - depends on network
        logger.warning("AI recipe suggestion request failed: %s", exc)
    except AIResponseError as exc:
        logger.warning("AI recipe suggestion response unusable: %s", exc)
    except Exception:
        logger.exception("Unexpected error while building AI recipe suggestions")
    return []


async def validate_ingredient_name(name: str) -> Dict[str, Optional[object]]:
    """Return ``{is_valid, reason, suggestion}`` for an ingredient name."""

    too_short = check_name_length(name)
    if too_short:
        return too_short

    client = get_ai_client()
    if client is None:
        return quick_validate_ingredient_name(name)

    try:
        content = await asyncio.to_thread(
            _request_completion,
            VALIDATION_SYSTEM_PROMPT,
            VALIDATION_PROMPT_TEMPLATE.format(name=name),
            temperature=0.2,
            max_tokens=300,
        )
        return parse_validation_response(content)
    except APIError as exc:  # pragma: no cover - depends on network
        logger.warning("AI ingredient validation failed: %s", exc)
    except AIResponseError as exc:
        logger.warning("AI ingredient validation response unusable: %s", exc)
    except Exception:
        logger.exception("Unexpected error during AI ingredient validation")
    return quick_validate_ingredient_name(name)


def build_recipe_prompt(
    ingredients: Sequence[Mapping[str, Any]],
    expiring: Sequence[Mapping[str, Any]],
    high_stock: Sequence[Mapping[str, Any]],
    today: date,
) -> str:
    available = ", ".join(
        f"{row.get('name')} ({row.get('quantity')} {row.get('unit')})"
        for row in ingredients
        if not is_expired(row, today)
    )
    expiring_text = ", ".join(
        f"{row.get('name')} (vence em {days_until_expiry(row.get('expiry_date'), today)} dias)"
        for row in expiring
    )
    high_stock_text = ", ".join(
        f"{row.get('name')} ({row.get('quantity')} {row.get('unit')} - estoque alto)" for row in high_stock
    )
    return RECIPE_PROMPT_TEMPLATE.format(
        available=available,
        expiring=expiring_text or "Nenhum",
        high_stock=high_stock_text or "Nenhum",
    )


def parse_recipe_suggestions(content: Optional[str]) -> List[Dict[str, Any]]:
    """Turn the raw completion into validated recipe dicts."""

    cleaned = strip_code_fences(content)
    if not cleaned:
        raise AIResponseError("empty completion")

    try:
        parsed = json.loads(cleaned)
    except ValueError:
        parsed = None

    if isinstance(parsed, dict) and isinstance(parsed.get("recipes"), list):
        entries = parsed["recipes"]
    elif isinstance(parsed, list):
        entries = parsed
    else:
        match = _ARRAY_PATTERN.search(cleaned)
        if not match:
            raise AIResponseError("no JSON array in completion")
        try:
            entries = json.loads(match.group(0))
        except ValueError as exc:
            raise AIResponseError("invalid JSON array in completion") from exc
        if not isinstance(entries, list):
            raise AIResponseError("completion is not a list")

    recipes: List[Dict[str, Any]] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        if not entry.get("name"):
            continue
        if not isinstance(entry.get("ingredients"), list) or not isinstance(entry.get("instructions"), list):
            continue
        recipes.append(
            {
                "name": str(entry["name"]),
                "description": str(entry.get("description") or ""),
                "ingredients": [str(item) for item in entry["ingredients"]],
                "instructions": [str(step) for step in entry["instructions"]],
                "cooking_time": _positive_int(entry.get("cookingTime", entry.get("cooking_time")), DEFAULT_COOKING_TIME),
                "servings": _positive_int(entry.get("servings"), DEFAULT_SERVINGS),
                "reason": str(entry.get("reason") or DEFAULT_REASON),
            }
        )
    return recipes[:MAX_AI_RECIPES]


def parse_validation_response(content: Optional[str]) -> Dict[str, Optional[object]]:
    cleaned = strip_code_fences(content)
    if not cleaned:
        raise AIResponseError("empty completion")

    try:
        parsed = json.loads(cleaned)
    except ValueError:
        match = _OBJECT_PATTERN.search(cleaned)
        if not match:
            raise AIResponseError("no JSON object in completion")
        try:
            parsed = json.loads(match.group(0))
        except ValueError as exc:
            raise AIResponseError("invalid JSON object in completion") from exc

    if not isinstance(parsed, dict):
        raise AIResponseError("completion is not an object")
    return validation_result(
        parsed.get("isValid") is True,
        parsed.get("reason"),
        parsed.get("suggestion"),
    )


def strip_code_fences(content: Optional[str]) -> str:
    return _FENCE_PATTERN.sub("", (content or "").strip()).strip()


def _request_completion(system_prompt: str, user_prompt: str, *, temperature: float, max_tokens: int) -> str:
    client = get_ai_client()
    if client is None:
        raise AIResponseError("AI client not configured")
    completion = client.chat.completions.create(
        model=AI_MODEL,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        temperature=temperature,
        max_tokens=max_tokens,
    )
    if completion.choices:
        return completion.choices[0].message.content or ""
    return ""


def _positive_int(value: Any, default: int) -> int:
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default
    return number if number > 0 else default


__all__ = [
    "AIResponseError",
    "build_recipe_prompt",
    "get_ai_recipe_suggestions",
    "parse_recipe_suggestions",
    "parse_validation_response",
    "strip_code_fences",
    "validate_ingredient_name",
]
