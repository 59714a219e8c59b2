"""Keyword based check that an ingredient name describes something edible."""

from __future__ import annotations

from typing import Dict, Optional, Tuple

NON_FOOD_KEYWORDS: Tuple[str, ...] = (
    "cadeira", "mesa", "garfo", "faca", "prato", "copo", "panela", "frigideira",
    "geladeira", "fogão", "microondas", "liquidificador", "batedeira", "forno",
    "pia", "torneira", "lixeira", "balcão", "armário", "gaveta", "porta", "janela",
    "parede", "teto", "chão", "piso", "tinta", "tela", "monitor", "computador",
    "teclado", "mouse", "celular", "telefone", "tablet", "notebook", "impressora",
    "papel", "caneta", "lápis", "borracha", "caderno", "livro", "revista", "jornal",
    "carro", "moto", "bicicleta", "ônibus", "avião", "barco", "navio", "trem",
    "roupa", "camisa", "calça", "sapato", "tênis", "meia", "cueca", "sutiã",
    "relógio", "óculos", "bolsa", "mochila", "carteira", "chave", "cadeado",
    "ferramenta", "martelo", "chave de fenda", "alicate", "serra", "furadeira",
    "parafuso", "prego", "arame", "fio", "cabo", "plugue", "tomada", "lâmpada",
    "interruptor", "ventilador", "ar condicionado", "aquecedor", "chuveiro",
    "sabonete", "shampoo", "condicionador", "pasta de dente", "escova de dente",
    "toalha", "lençol", "travesseiro", "cobertor", "edredom", "cortina",
    "planta", "vaso", "terra", "adubo", "semente", "flor", "árvore", "grama",
    "animal", "cachorro", "gato", "pássaro", "peixe", "hamster", "coelho",
    "brinquedo", "boneca", "carrinho", "bola", "jogo", "videogame", "console",
    "medicamento", "remédio", "vitamina", "suplemento", "pílula", "comprimido",
    "produto de limpeza", "detergente", "sabão", "desinfetante", "água sanitária",
    "perfume", "desodorante", "creme", "loção", "protetor solar", "maquiagem",
    "pincel", "espelho", "pente", "tesoura", "alicate de unha", "lixa",
)

MIN_NAME_LENGTH = 2
NAME_TOO_SHORT = "Nome muito curto. Use um nome descritivo do ingrediente."


def validation_result(
    is_valid: bool,
    reason: Optional[str] = None,
    suggestion: Optional[str] = None,
) -> Dict[str, Optional[object]]:
    return {"is_valid": is_valid, "reason": reason, "suggestion": suggestion}


def check_name_length(name: str) -> Optional[Dict[str, Optional[object]]]:
    """Return an invalid result for names that are too short, else None."""

    if len((name or "").strip()) < MIN_NAME_LENGTH:
        return validation_result(False, NAME_TOO_SHORT)
    return None


def find_non_food_keyword(name: str) -> Optional[str]:
    normalized = (name or "").strip().lower()
    for keyword in NON_FOOD_KEYWORDS:
        if keyword in normalized:
            return keyword
    return None


def quick_validate_ingredient_name(name: str) -> Dict[str, Optional[object]]:
    """Validate without the AI: keyword containment, then the length rule."""

    keyword = find_non_food_keyword(name)
    if keyword:
        return validation_result(
            False,
            f'"{name}" não parece ser um ingrediente comestível. Parece ser um(a) {keyword}.',
        )
    too_short = check_name_length(name)
    if too_short:
        return too_short
    return validation_result(True)


__all__ = [
    "NON_FOOD_KEYWORDS",
    "check_name_length",
    "find_non_food_keyword",
    "quick_validate_ingredient_name",
    "validation_result",
]
