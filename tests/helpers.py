"""Shared test doubles: scripted LLM backend, widget sources, plan builders."""

import json

from ouroboros.exceptions import ProviderError
from ouroboros.llm import prompts


CLOCK_SOURCE = '''from ui import Card, Heading, Text

export default def Clock(props):
    return Card(Heading("Clock"), Text(props["theme"]))
'''

COUNTER_SOURCE = '''from ui import Card, Button, Text

def Counter(props):
    state = props["state"]
    state.setdefault("n", 0)

    def bump():
        state["n"] += 1

    return Card(Text(f"Count: {state['n']}"), Button("Add", on_click=bump))

export default Counter
'''

DEFAULT_BRIEF = "A compact card with a large readout.\nRECOMMENDED_TEMPLATE: blank"


def plan_json(*actions, thought="test plan") -> str:
    """Planner reply in the wire format the orchestrator is asked for."""
    return json.dumps({"thought": thought, "actions": list(actions)})


def rate_limited() -> ProviderError:
    return ProviderError("quota exceeded", status_code=429, provider="google", code="RESOURCE_EXHAUSTED")


class ScriptedAdapter:
    """Backend adapter that answers by pipeline role.

    The role is recognised from the system instruction. Each role has a
    queue; an empty queue falls back to a default reply. Queue items may be
    strings or exceptions (raised instead of answering).
    """

    def __init__(self):
        self.plans: list = []
        self.briefs: list = []
        self.sources: list = []
        self.chats: list = []
        self.calls: list[dict] = []

    def _role(self, system: str) -> str:
        if system == prompts.ORCHESTRATOR_SYSTEM:
            return "plan"
        if system == prompts.ARCHITECT_SYSTEM:
            return "brief"
        if system == prompts.ENGINEER_SYSTEM:
            return "source"
        return "chat"

    def calls_for(self, role: str) -> list[dict]:
        return [c for c in self.calls if c["role"] == role]

    async def complete(self, api_key, model, prompt, system, json_mode=False):
        role = self._role(system)
        self.calls.append({"role": role, "prompt": prompt, "system": system, "json_mode": json_mode, "model": model})
        queue = {"plan": self.plans, "brief": self.briefs, "source": self.sources, "chat": self.chats}[role]
        if queue:
            item = queue.pop(0)
        else:
            item = {
                "plan": plan_json({"type": "CREATE", "prompt": "widget"}),
                "brief": DEFAULT_BRIEF,
                "source": CLOCK_SOURCE,
                "chat": "hello from the model",
            }[role]
        if isinstance(item, Exception):
            raise item
        return item
