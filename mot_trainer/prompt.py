"""
Prompt builders shared by all backends.

Keeping them here prevents prompt logic from getting scattered across the
providers. Messages are returned in a neutral shape,
{"role": "user"|"assistant", "content": str}; each backend maps that onto
its own wire format. The simulated customer is always the "assistant".
"""
from __future__ import annotations

import json
from typing import Dict, List, Sequence

from mot_trainer.models import Scenario, Stage, Turn

Message = Dict[str, str]

STAGE_EMPHASIS = {
    Stage.EXPLORE: "强调同理心和需求确认",
    Stage.OFFER: "强调方案的针对性",
    Stage.ACTION: "强调执行力和透明度",
    Stage.CONFIRM: "强调闭环和客户满意度",
}


def build_opening_directive(scenario: Scenario) -> str:
    """The hidden first user message that makes the customer speak first."""
    return (
        f"(系统提示：作为{scenario.persona.name}，你来到了{scenario.industry.name}服务台，"
        f"由于某些原因你心情不好。请直接说出第一句挑衅或不满的话。)"
    )


def build_customer_instruction(scenario: Scenario, stage: Stage) -> str:
    traits = "、".join(scenario.persona.traits)
    return f"""你现在扮演一名正在和客服沟通的客户。
背景行业：{scenario.industry.name}。
你的画像：{scenario.persona.name}，特点是{traits}。
当前所处的服务阶段：{stage.value}。
你的任务是：根据你的性格特点回复客服，你可以表现出不满、疑惑或满意，取决于客服的回复质量。
请保持回复简短（50字以内），符合口语化。"""


def build_customer_messages(scenario: Scenario, history: Sequence[Turn]) -> List[Message]:
    """Opening directive followed by the turn log as alternating roles."""
    messages: List[Message] = [{"role": "user", "content": build_opening_directive(scenario)}]
    for turn in history:
        role = "assistant" if turn.role == "customer" else "user"
        messages.append({"role": role, "content": turn.text})
    return messages


def build_coach_instruction() -> str:
    lines = [
        "你是一名资深的MOT关键时刻服务导师。",
        "请针对客服的回复给出专业建议。",
    ]
    for stage, emphasis in STAGE_EMPHASIS.items():
        lines.append(f"如果是{stage.value}阶段，{emphasis}；")
    lines.append("你的回复应该包含：一段简短的评价，以及2-3个针对性的标签（如：#同理心优先 #立即补偿）。")
    lines.append('返回格式: "评价内容 | 标签1,标签2"')
    return "\n".join(lines)


def build_coach_message(scenario: Scenario, stage: Stage, customer_text: str, trainee_text: str) -> str:
    return (
        f"行业: {scenario.industry.name}\n"
        f"客户画像: {scenario.persona.name}\n"
        f'客户刚才说: "{customer_text}"\n'
        f'客服回复说: "{trainee_text}"\n'
        f"当前阶段: {stage.value}"
    )


EVALUATION_INSTRUCTION = """你是一名MOT关键时刻服务评估专家。
请根据完整的对话记录，对客服（trainee）的表现进行评估。
所有分数均为0-100的数字。
keyMoments 按对话顺序列出，type 只能是 "positive" 或 "negative"，stage 为 EXPLORE/OFFER/ACTION/CONFIRM 之一，content 引用原话。
只输出JSON，不要markdown，不要额外的键：
{
  "overallScore": number,
  "empathy": number,
  "logic": number,
  "efficiency": number,
  "compliance": number,
  "professionalism": number,
  "summary": string,
  "strengths": [string],
  "weaknesses": [string],
  "keyMoments": [{"type": "positive|negative", "time": string, "stage": string, "content": string, "comment": string}]
}"""


def build_evaluation_message(history: Sequence[Turn]) -> str:
    transcript = [{"seq": t.seq, "role": t.role, "content": t.text} for t in history]
    return "请对以下服务过程进行评估：\n" + json.dumps(transcript, ensure_ascii=False)
