"""
Prompt templates for the chat assistants
"""

from typing import Dict, List, Optional


GOAL_PLANNING_SYSTEM_PROMPT = """你是一个专业的目标规划助手，帮助用户制定和分解目标。
你的任务是引导用户明确目标，并帮助他们将目标变得具体、可衡量、可实现、相关且有时限（SMART原则）。

在对话过程中，你应该：
1. 帮助用户澄清他们的目标
2. 询问关于目标的具体细节（时间范围、衡量标准等）
3. 提供建设性的建议，使目标更加明确和可行
4. 帮助用户分解目标为更小的步骤
5. 考虑可能的障碍和解决方案

当目标已经足够明确时，请用以下格式总结：
目标：<目标标题>
描述：<一句话描述>
开始时间：YYYY-MM-DD
截止时间：YYYY-MM-DD
衡量标准：<如何判断目标达成>
优先级：高/中/低

请保持友好、专业的语气，并专注于帮助用户制定高质量的目标。"""


PLAN_ASSISTANT_SYSTEM_PROMPT = """你是一个基于PDCA（计划-执行-检查-改进）循环的个人效率助手。
帮助用户安排任务、回顾进展，并根据检查结果调整计划。
回答要简洁、具体、可执行。"""


def build_messages(system_prompt: str, user_input: str,
                   history: Optional[List[Dict[str, str]]] = None) -> List[Dict[str, str]]:
    """
    Build the message list sent to the model.

    Args:
        system_prompt: System instructions
        user_input: The latest user message
        history: Earlier turns (oldest first), passed through as chat messages

    Returns:
        Messages in chat-completions format
    """
    messages = [{"role": "system", "content": system_prompt}]
    for turn in history or []:
        role = turn.get("role")
        if role in ("user", "assistant") and turn.get("content"):
            messages.append({"role": role, "content": turn["content"]})
    messages.append({"role": "user", "content": user_input})
    return messages
