"""Judge prompts - instructions for the AI game master."""

from __future__ import annotations

import json
from typing import Any


# =============================================================================
# System Prompt
# =============================================================================


JUDGE_SYSTEM_PROMPT = """You are the impartial game master of an interactive story.
You adjudicate actions, narrate characters and settle the end of each round.

## RULES

- Base every decision strictly on the supplied world state, recent story and entity attributes.
- Numeric comparisons are strict: 50 > 50 is false, 50 >= 50 is true.
- Attribute names may appear localized (Health = 健康, CP = 创造点, Physique = 体能, Pleasure = 快感, Energy = 能量, Status = 状态); treat them as the same attribute.
- Passive defensive cards held by a target can make an active skill fail; name the card in the reason.
- Reply with a single JSON object and nothing else.
"""


# =============================================================================
# Condition Checks
# =============================================================================


CONDITION_CHECK_PROMPT = """Evaluate each pending condition.

[Recent story]
{history}

[Entities involved (attributes, skills and inventory)]
{entities}

[World]
{world}

[Pending conditions]
{items}

Guidance:
- Conditions "True", "None" or "Always" hold unless a passive card blocks them.
- If a condition tests an attribute the target does not have (and that is not an alias), return a "newAttribute" suggestion.
- If "needsValue" is true, compute the value and return it in "derivedValue".
- If the action is an acquisition or a trade the other side agrees to, return "tradeResult". "transactionType" is from the acting character's point of view: "buy" when they receive the item, "sell" when they give it.
{prompt_suffix}

Output format:
{{
  "results": {{
    "<request id>": {{
      "result": true,
      "reason": "short reason",
      "derivedValue": null,
      "targetName": null,
      "newAttribute": {{"name": "...", "type": "NUMBER|TEXT"}} or null,
      "tradeResult": {{
        "itemName": "...",
        "itemType": "consumable|skill",
        "description": "...",
        "transactionType": "buy|sell",
        "price": 0,
        "sourceCharacterName": "..."
      }} or null
    }}
  }}
}}
"""


# =============================================================================
# Actions & Reactions
# =============================================================================


ACTION_PROMPT = """Decide the next action of {name}.

[Character]
{persona}

[Guidance]
{guidance}

[Current location]
{location}

[Reachable destinations]
{destinations}

[Characters present]
{characters}

[Usable cards]
{cards}

[Prize pools]
{prize_pools}

[World]
{world}

[Recent story]
{history}
{prompt_suffix}

Output format:
{{
  "narrative": "third-person description of what happens",
  "speech": "what {name} says, may be empty",
  "timePassed": "00:00:05:00",
  "commands": [
    {{"type": "use_skill", "skillId": "...", "targetId": "...", "effectOverrides": {{"0": 10}}}},
    {{"type": "move_to", "destinationName": "..."}},
    {{"type": "lottery", "poolId": "...", "action": "draw|deposit|peek", "amount": 1, "cardIds": []}},
    {{"type": "create_card", "createdCard": {{"name": "...", "description": "...", "effects": []}}}}
  ],
  "generatedConflicts": [{{"targetCharId": "...", "desc": "...", "apReward": 5}}],
  "generatedDrives": [{{"targetCharId": "...", "drive": {{"condition": "...", "amount": 10, "weight": 50}}}}]
}}
"""


REACTION_PROMPT = """Write how {name} reacts, in character.

[Character]
{persona}

[What {name} remembers]
{memory}

[Characters present]
{characters}

[World]
{world}

[Situation]
{situation}
{prompt_suffix}

Output format:
{{"speech": "one or two sentences, may be empty"}}
"""


# =============================================================================
# Settlement
# =============================================================================


SETTLEMENT_PROMPT = """The round is over. Decide which conflicts were resolved and which drives were fulfilled by what happened.

[Recent story]
{history}

[Open conflicts]
{conflicts}

[Drives]
{drives}

[World]
{world}
{prompt_suffix}

Only list ids that clearly happened in the story.

Output format:
{{"solvedConflictIds": ["..."], "fulfilledDriveIds": ["..."]}}
"""


def to_json(value: Any) -> str:
    """Render context for a prompt."""
    return json.dumps(value, ensure_ascii=False, indent=2, default=str)


__all__ = [
    "JUDGE_SYSTEM_PROMPT",
    "CONDITION_CHECK_PROMPT",
    "ACTION_PROMPT",
    "REACTION_PROMPT",
    "SETTLEMENT_PROMPT",
    "to_json",
]
