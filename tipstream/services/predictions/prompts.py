"""
TIPSTREAM - Prompt Builders
Russian-language instructions for the generator.

Selection prompts list every candidate fixture with its real 1X2 odds so
the model picks from ground truth; analysis prompts describe one
free-form match and are optionally enriched with search snippets.
"""

from typing import List, Optional, Sequence

from tipstream.models.schemas import MatchWithOdds

SYSTEM_MESSAGE = (
    "Верни ТОЛЬКО валидный JSON. Без прозы. Без markdown. Без объяснений. "
    "Без блоков кода. Все тексты на русском языке."
)

SEPARATOR = "═" * 55


def format_match_line(index: int, match: MatchWithOdds) -> str:
    when = match.date.strftime("%d.%m.%Y")
    if match.time:
        when = f"{when} {match.time}"
    league = f" [{match.league}]" if match.league else ""
    return (
        f"{index}. {match.title}{league}, {when} | "
        f"П1: {match.odds.home}, X: {match.odds.draw}, П2: {match.odds.away}"
    )


def format_match_list(matches: Sequence[MatchWithOdds]) -> str:
    return "\n".join(format_match_line(i, m) for i, m in enumerate(matches, start=1))


def format_exclusions(excluded: Sequence[str]) -> str:
    if not excluded:
        return ""
    lines = "\n".join(f"- {name}" for name in excluded)
    return (
        "\n\nНЕ выбирай эти матчи, они уже были в недавних прогнозах:\n"
        f"{lines}\n"
    )


def build_single_prompt(matches: Sequence[MatchWithOdds], excluded: Sequence[str] = ()) -> str:
    return (
        "Ты профессиональный футбольный аналитик. Ниже список реальных матчей "
        "с реальными коэффициентами букмекера (П1 - победа хозяев, X - ничья, "
        "П2 - победа гостей).\n\n"
        f"{format_match_list(matches)}"
        f"{format_exclusions(excluded)}\n"
        "Выбери ОДИН матч с минимальным риском и дай прогноз на него.\n"
        "Требования:\n"
        "1. Поле match - строго в формате \"Хозяева - Гости\", названия команд как в списке.\n"
        "2. Поле prediction - исход на русском: \"Победа хозяев\", \"Победа гостей\", "
        "\"Ничья\" или другой рынок (например тотал).\n"
        "3. Поле odds - реальный коэффициент из списка для выбранного исхода, "
        "желательно в диапазоне 1.30-1.60.\n"
        "4. Поле confidence - уверенность от 70 до 85.\n"
        "5. Выбирай разные матчи, не всегда первый в списке."
    )


def build_express_prompt(
    matches: Sequence[MatchWithOdds],
    excluded: Sequence[str] = (),
    size: int = 3,
) -> str:
    return (
        "Ты профессиональный футбольный аналитик. Ниже список реальных матчей "
        "с реальными коэффициентами букмекера (П1 - победа хозяев, X - ничья, "
        "П2 - победа гостей).\n\n"
        f"{format_match_list(matches)}"
        f"{format_exclusions(excluded)}\n"
        f"Составь экспресс ровно из {size} РАЗНЫХ матчей этого списка с минимальным риском.\n"
        "Требования:\n"
        "1. В каждой ставке поле match - строго \"Хозяева - Гости\", названия команд как в списке.\n"
        "2. Поле prediction - исход на русском: \"Победа хозяев\", \"Победа гостей\", "
        "\"Ничья\" или другой рынок.\n"
        "3. Поле odds - реальный коэффициент выбранного исхода из списка.\n"
        "4. Поле total_odds - произведение коэффициентов всех ставок.\n"
        "5. Поле confidence - уверенность от 0 до 100.\n"
        "6. Выбирай разные комбинации матчей от запроса к запросу."
    )


def build_analysis_prompt(match: str, league: Optional[str] = None, date: Optional[str] = None) -> str:
    lines = [
        "Ты профессиональный футбольный аналитик. Проанализируй матч и дай один прогноз.",
        "",
        f"Матч: {match}",
    ]
    if league:
        lines.append(f"Лига: {league}")
    if date:
        lines.append(f"Дата: {date}")
    lines += [
        "",
        "Требования:",
        "1. Поле match - название матча на русском в формате \"Хозяева - Гости\".",
        "2. Поле prediction - наиболее вероятный исход на русском.",
        "3. Поле riskPercent - процент риска от 0 до 100 на основе формы и статистики команд.",
        "4. Поле odds - реальный коэффициент букмекеров на этот исход (от 1.0 до 10.0).",
    ]
    return "\n".join(lines)


def build_search_queries(match: str, league: Optional[str] = None, limit: int = 4) -> List[str]:
    queries = [
        f"{match} коэффициенты букмекеров сегодня актуальные",
        f"{match} ставки коэффициенты 1xbet bet365 fonbet parimatch",
        f"букмекеры {match} коэффициенты на победу тотал",
        f"{match} прогноз статистика форма команд",
    ]
    if league:
        queries.append(f"{league} {match} коэффициенты букмекеров")
    return queries[:limit]


def with_search_context(prompt: str, snippets: Sequence[str]) -> str:
    """Append retrieved snippets, or an explicit no-context instruction."""
    if not snippets:
        return (
            f"{prompt}\n\n"
            "КРИТИЧЕСКИ ВАЖНО: Поиск в интернете не дал результатов с коэффициентами букмекеров.\n"
            "НЕ придумывай коэффициенты! Если реальные коэффициенты не найдены, верни "
            "коэффициент 0 или 99.99, чтобы показать, что реальные данные не найдены."
        )

    context = f"\n\n{SEPARATOR}\n\n".join(snippets)
    return (
        f"{prompt}\n\n{SEPARATOR}\n"
        "РЕАЛЬНАЯ ИНФОРМАЦИЯ ИЗ ИНТЕРНЕТА О МАТЧЕ И КОЭФФИЦИЕНТАХ БУКМЕКЕРОВ:\n"
        f"{SEPARATOR}\n{context}\n{SEPARATOR}\n\n"
        "КРИТИЧЕСКИ ВАЖНО - РЕАЛЬНЫЕ КОЭФФИЦИЕНТЫ БУКМЕКЕРОВ:\n"
        "1. Внимательно изучи информацию выше и найди реальные коэффициенты букмекеров.\n"
        "2. Коэффициенты могут быть указаны как \"2.80\", \"коэф. 2.5\", \"odds 1.8\".\n"
        "3. Если для одного исхода несколько коэффициентов, используй средний или наиболее частый.\n"
        "4. НЕ придумывай и НЕ рассчитывай коэффициенты математически.\n"
        "5. Если реальных коэффициентов нет, верни 0.\n"
        "6. Процент риска рассчитывай по форме и статистике команд из информации выше."
    )
