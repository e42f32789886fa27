"""Compares random arithmetic snippets against Python's own eval, prints mismatches"""
import math
import random
import re
import string
import warnings

from formula.context import ParserContext
from formula.parser import parse
from formula.runtime import calculate

warnings.filterwarnings("ignore")


def eval_py(code: str) -> float | str:
    try:
        res = eval(code)
    except Exception as e:
        return str(e)
    return float(res) if isinstance(res, (int, float)) else str(res)


def eval_my(code: str, context: ParserContext) -> float | str:
    try:
        return calculate(parse(code, context))
    except Exception as e:
        return str(e)


if __name__ == "__main__":
    alphabet = string.digits + ".()+-*/ "
    context = ParserContext()

    def generate(length: int) -> str:
        return "".join(random.choices(alphabet, k=length))

    while True:
        code = generate(10)

        if re.findall(r"\*\s*\*", code):
            continue  # avoid generating powers (10**4)

        if re.findall(r"/\s*/", code):
            continue  # avoid generating int division (10 // 3)

        res_py = eval_py(code)
        res_my = eval_my(code, context)
        if isinstance(res_py, float) and isinstance(res_my, float) and math.isclose(res_my, res_py):
            continue
        if isinstance(res_py, str) and isinstance(res_my, str):
            continue
        if isinstance(res_py, str) and res_py.startswith("leading zeros in decimal integer literals are not permitted"):
            continue
        if isinstance(res_py, str) and "division by zero" in res_py and isinstance(res_my, float):
            continue  # inf / nan here
        print(f"{code!r}\npy: {res_py}\nmy: {res_my}\n\n")
