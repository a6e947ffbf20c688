from typing import Optional

from knowledge_bot.models.rotation import Command


def parse_command(text: Optional[str]) -> Optional[Command]:
    """
    Разобрать текст slash-команды.

    Возвращает None, если текст пустой (нужно показать справку). Ошибок
    разбора не бывает: всё, что не удалось распознать, позже превратится
    в справку у диспетчера.
    """
    tokens = (text or "").split()
    if not tokens:
        return None
    return Command(verb=tokens[0], args=tokens[1:])
