"""
行内替换：%randomNumber<N>% -> N 位随机数字
"""
import random
import re
from typing import Optional

_RANDOM_NUMBER_RE = re.compile(r"%randomNumber(\d+)%")


def generate_random_number(length: int, rng: Optional[random.Random] = None) -> str:
    rng = rng or random
    return "".join(str(rng.randint(0, 9)) for _ in range(length))


def apply_extras(command: str, rng: Optional[random.Random] = None) -> str:
    return _RANDOM_NUMBER_RE.sub(
        lambda m: generate_random_number(int(m.group(1)), rng),
        command,
    )
