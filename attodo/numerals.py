#!/usr/bin/env python3
"""
Numeral Translator

Maps spelled-out English number words ("three", "fifteen", "a", "an")
to integers for the relative-offset rules of the date parser.
"""

from typing import Optional

NUMBER_WORDS = {
    'one': 1, 'two': 2, 'three': 3, 'four': 4, 'five': 5,
    'six': 6, 'seven': 7, 'eight': 8, 'nine': 9, 'ten': 10,
    'eleven': 11, 'twelve': 12, 'thirteen': 13, 'fourteen': 14, 'fifteen': 15,
    'sixteen': 16, 'seventeen': 17, 'eighteen': 18, 'nineteen': 19, 'twenty': 20,
    'thirty': 30, 'forty': 40, 'fifty': 50, 'sixty': 60,
    'seventy': 70, 'eighty': 80, 'ninety': 90,
    # Articles count as one ("a week", "an hour")
    'a': 1, 'an': 1,
}


def text_to_number(word: str) -> Optional[int]:
    """
    Convert a number word to an integer

    Args:
        word: Single word token, any case

    Returns:
        The integer value, or None if the word is not a known numeral
    """
    if not word:
        return None

    return NUMBER_WORDS.get(word.strip().lower())
