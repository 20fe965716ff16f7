# jan_lookup/pipeline/prompt_builder.py
import json
import logging
from typing import Optional, Sequence

from ..models import PromptMode, PromptText
from .markers import MarkerProtocol

logger = logging.getLogger(__name__)

# The exact keys the extractor maps into a ProductRecord.
SCHEMA_EXAMPLE = {
    "jan": "0000000000000",
    "maker": "Example Foods Co., Ltd.",
    "name": "Example Green Tea 500ml",
    "category": "Soft drinks",
    "min_price": 98,
    "max_price": 128,
    "width_cm": 5.5,
    "height_cm": 18.0,
    "depth_cm": 5.5,
}


def _schema_block(mode: PromptMode, protocol: MarkerProtocol) -> str:
    example = SCHEMA_EXAMPLE if mode is PromptMode.SINGLE else [SCHEMA_EXAMPLE]
    body = json.dumps(example, ensure_ascii=False, indent=2)
    return f"{protocol.start}\n{body}\n{protocol.end}"


def build_prompt(
    codes: Sequence[str],
    mode: Optional[PromptMode] = None,
    protocol: Optional[MarkerProtocol] = None,
) -> PromptText:
    """
    Builds the instruction text sent to the AI page for one or more product codes.

    A single code defaults to the single-object schema, several codes to the
    array schema. The session's sentinel is written exactly once, on the last
    line, so that the monitor can tell the echoed prompt from the AI's own output.
    """
    if not codes:
        raise ValueError("build_prompt needs at least one product code")
    codes = tuple(codes)
    if mode is None:
        mode = PromptMode.SINGLE if len(codes) == 1 else PromptMode.ARRAY
    if mode is PromptMode.SINGLE and len(codes) != 1:
        raise ValueError("single-object prompts take exactly one code")
    protocol = protocol or MarkerProtocol.create()

    if mode is PromptMode.SINGLE:
        output_rule = f"- Output exactly one JSON object between {protocol.start} and {protocol.end}."
        count_rule = ""
        input_block = f"JAN: {codes[0]}"
        closing = "Use the input above and output one JSON object in exactly the format shown."
    else:
        output_rule = f"- Output exactly one JSON array between {protocol.start} and {protocol.end}."
        count_rule = (
            f"- The array must contain exactly {len(codes)} elements, one per JAN code, in the order given.\n"
            "- Never omit a code. If a product cannot be identified, still output its element "
            "with its \"jan\", \"name\": \"unknown\" and null for every other field.\n"
        )
        input_block = "JAN codes:\n" + "\n".join(f"- {code}" for code in codes)
        closing = f"Use the input above and output one JSON array with {len(codes)} elements in exactly the format shown."

    text = (
        "You are building product master data (JSON) for a supermarket shelf-layout system.\n"
        "Follow every constraint below.\n"
        "\n"
        "# Output format\n"
        f"{output_rule}\n"
        "- Do not write explanations, notes, citations or any text other than the JSON.\n"
        "\n"
        "# JSON schema\n"
        f"{_schema_block(mode, protocol)}\n"
        "\n"
        "# Rules\n"
        "- Numbers are JSON numbers. All sizes are in centimeters (cm).\n"
        "- If a size is unknown, use null (for example \"width_cm\": null).\n"
        "- If the price is unknown, use null for min_price and max_price. Prices are whole yen.\n"
        "- Never rename, add or remove keys.\n"
        f"{count_rule}"
        "\n"
        "# Input\n"
        f"{input_block}\n"
        "\n"
        f"{closing}\n"
        f"After {protocol.end}, finish your answer with this token on its own line: {protocol.sentinel}"
    )

    prompt = PromptText(
        text=text,
        codes=codes,
        mode=mode,
        sentinel=protocol.sentinel,
        sentinel_count=protocol.count_sentinels(text),
        end_marker_count=protocol.count_end_markers(text),
    )
    logger.debug(
        "Built %s prompt for %d code(s): %d chars, sentinel x%d, end marker x%d",
        mode.value, len(codes), len(text), prompt.sentinel_count, prompt.end_marker_count,
    )
    return prompt
