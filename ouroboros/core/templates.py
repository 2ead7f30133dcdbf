"""Starting skeletons handed to the Engineer, one per widget archetype.

Skeletons are complete, compilable widget modules. User-visible strings are
``$placeholders`` filled from ``TRANSLATIONS`` so the Engineer starts from
text already in the user's language.
"""

from string import Template

from ouroboros.types import Language, TemplateId

TRANSLATIONS = {
    Language.EN: {
        "days": ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"],
        "dash_title": "Overview",
        "dash_subtitle": "Key metrics for this week",
        "refresh": "Refresh data",
        "revenue": "Revenue",
        "users": "Active users",
        "growth": "Growth",
        "weekly": "Weekly performance",
        "chat_title": "Assistant",
        "chat_placeholder": "Type a message...",
        "chat_empty": "Start the conversation.",
        "chat_thinking": "Thinking...",
        "send": "Send",
        "list_title": "Tasks",
        "list_filter": "Filter tasks...",
        "list_add": "Add task",
        "list_new": "New task",
        "list_remove": "Remove task",
        "list_items": ["Review quarterly report", "Plan team offsite", "Update roadmap"],
        "list_empty": "Nothing here yet.",
        "tool_title": "Calculator",
        "tool_first": "First value",
        "tool_second": "Second value",
        "tool_result": "Result",
        "tool_invalid": "Enter two numbers",
        "blank_title": "New widget",
        "blank_body": "Describe what this widget should do.",
    },
    Language.ES: {
        "days": ["Lun", "Mar", "Mié", "Jue", "Vie", "Sáb", "Dom"],
        "dash_title": "Resumen",
        "dash_subtitle": "Métricas clave de esta semana",
        "refresh": "Actualizar datos",
        "revenue": "Ingresos",
        "users": "Usuarios activos",
        "growth": "Crecimiento",
        "weekly": "Rendimiento semanal",
        "chat_title": "Asistente",
        "chat_placeholder": "Escribe un mensaje...",
        "chat_empty": "Inicia la conversación.",
        "chat_thinking": "Pensando...",
        "send": "Enviar",
        "list_title": "Tareas",
        "list_filter": "Filtrar tareas...",
        "list_add": "Añadir tarea",
        "list_new": "Nueva tarea",
        "list_remove": "Eliminar tarea",
        "list_items": ["Revisar informe trimestral", "Planear salida del equipo", "Actualizar hoja de ruta"],
        "list_empty": "Aún no hay nada.",
        "tool_title": "Calculadora",
        "tool_first": "Primer valor",
        "tool_second": "Segundo valor",
        "tool_result": "Resultado",
        "tool_invalid": "Introduce dos números",
        "blank_title": "Nuevo widget",
        "blank_body": "Describe lo que debe hacer este widget.",
    },
}

_DASHBOARD = Template('''\
from ui import Card, Column, Row, Grid, Heading, Text, Button, themed
from icons import Activity, TrendingUp, Users, DollarSign
from charts import ResponsiveContainer, BarChart, Bar, XAxis, YAxis, CartesianGrid, Tooltip

DAYS = $days


def make_data():
    return [
        {"name": day, "value": random.randint(1000, 6000), "prev": random.randint(1000, 6000)}
        for day in DAYS
    ]


def stat(icon, label, value):
    return Card(
        Row(icon(size=18), Text(label, size="xs", tone="muted"), gap=3),
        Heading(value, level=2),
        padding=4,
        border=themed("zinc-200", "zinc-800"),
    )


def DashboardSkeleton(props):
    state = props["state"]
    if "data" not in state:
        state["data"] = make_data()

    def refresh():
        state["data"] = make_data()

    return Column(
        Row(
            Column(Heading("$dash_title", level=2), Text("$dash_subtitle", size="xs", tone="muted")),
            Button(Activity(size=16), on_click=refresh, aria_label="$refresh"),
            justify="between",
        ),
        Grid(
            stat(DollarSign, "$revenue", "$$12,450"),
            stat(Users, "$users", "1,204"),
            stat(TrendingUp, "$growth", "+14%"),
            columns=3,
            gap=4,
        ),
        Card(
            Heading("$weekly", level=3),
            ResponsiveContainer(
                BarChart(
                    CartesianGrid(stroke_dasharray="3 3"),
                    XAxis(data_key="name"),
                    YAxis(),
                    Tooltip(),
                    Bar(data_key="value", fill=themed("#18181b", "#e4e4e7")),
                    data=state["data"],
                ),
                height=240,
            ),
            padding=4,
        ),
        background=themed("zinc-50", "zinc-950"),
        gap=6,
        padding=6,
    )


export default DashboardSkeleton
''')

_CHAT = Template('''\
from ui import Card, Column, Row, Heading, Text, Input, Button, themed
from icons import Send, MessageSquare
from ouroboros import use_chat


def ChatSkeleton(props):
    state = props["state"]
    if "chat" not in state:
        state["chat"] = use_chat(mode="standard")
        state["draft"] = ""
    chat = state["chat"]

    def set_draft(value):
        state["draft"] = value

    def send():
        text = state["draft"].strip()
        if text:
            state["draft"] = ""
            chat.send_message(text)

    bubbles = [
        Card(
            Text(message["content"]),
            align="end" if message["role"] == "user" else "start",
            background=themed("zinc-900", "zinc-100") if message["role"] == "user" else themed("white", "zinc-900"),
        )
        for message in chat.messages
    ]

    return Column(
        Row(MessageSquare(size=18), Heading("$chat_title", level=2), gap=2),
        Column(
            bubbles or Text("$chat_empty", tone="muted"),
            chat.loading and Text("$chat_thinking", tone="muted"),
            chat.error and Text(chat.error, tone="danger"),
            scroll=True,
            grow=True,
        ),
        Row(
            Input(value=state["draft"], placeholder="$chat_placeholder", on_change=set_draft, on_submit=send),
            Button(Send(size=16), on_click=send, aria_label="$send", disabled=chat.loading),
            gap=2,
        ),
        background=themed("white", "zinc-950"),
        padding=4,
        gap=4,
    )


export default ChatSkeleton
''')

_LIST = Template('''\
from ui import Column, Row, Heading, Text, Input, Button, List, ListItem, Badge, themed
from icons import Plus, Trash2, CheckCircle, Circle

STARTER = $list_items


def ListSkeleton(props):
    state = props["state"]
    if "items" not in state:
        state["items"] = [{"id": i, "title": title, "done": False} for i, title in enumerate(STARTER)]
        state["filter"] = ""
        state["next_id"] = len(STARTER)

    def toggle(item_id):
        for item in state["items"]:
            if item["id"] == item_id:
                item["done"] = not item["done"]

    def remove(item_id):
        state["items"] = [item for item in state["items"] if item["id"] != item_id]

    def add():
        state["items"].append({"id": state["next_id"], "title": "$list_new", "done": False})
        state["next_id"] += 1

    def set_filter(value):
        state["filter"] = value

    needle = state["filter"].lower()
    visible = [item for item in state["items"] if needle in item["title"].lower()]

    rows = [
        ListItem(
            Button(
                CheckCircle(size=16) if item["done"] else Circle(size=16),
                on_click=lambda item_id=item["id"]: toggle(item_id),
                aria_label=item["title"],
            ),
            Text(item["title"], strike=item["done"]),
            Button(Trash2(size=14), on_click=lambda item_id=item["id"]: remove(item_id), aria_label="$list_remove"),
        )
        for item in visible
    ]

    return Column(
        Row(
            Heading("$list_title", level=2),
            Badge(str(len(state["items"]))),
            Button(Plus(size=16), on_click=add, aria_label="$list_add"),
            justify="between",
        ),
        Input(value=state["filter"], placeholder="$list_filter", on_change=set_filter),
        List(rows) if rows else Text("$list_empty", tone="muted"),
        background=themed("white", "zinc-950"),
        padding=4,
        gap=3,
    )


export default ListSkeleton
''')

_TOOL = Template('''\
from ui import Card, Column, Row, Heading, Text, Input, themed
from icons import Zap


def parse(value):
    try:
        return float(value)
    except ValueError:
        return None


def ToolSkeleton(props):
    state = props["state"]
    state.setdefault("a", "")
    state.setdefault("b", "")

    def set_a(value):
        state["a"] = value

    def set_b(value):
        state["b"] = value

    a = parse(state["a"])
    b = parse(state["b"])
    result = Text(f"{a + b:,.2f}", size="xl") if a is not None and b is not None else Text("$tool_invalid", tone="muted")

    return Column(
        Row(Zap(size=18), Heading("$tool_title", level=2), gap=2),
        Input(value=state["a"], placeholder="$tool_first", on_change=set_a, kind="number"),
        Input(value=state["b"], placeholder="$tool_second", on_change=set_b, kind="number"),
        Card(Text("$tool_result", size="xs", tone="muted"), result, padding=4),
        background=themed("white", "zinc-950"),
        padding=4,
        gap=3,
    )


export default ToolSkeleton
''')

_BLANK = Template('''\
from ui import Card, Heading, Text, themed


def BlankSkeleton(props):
    return Card(
        Heading("$blank_title", level=2),
        Text("$blank_body", tone="muted"),
        background=themed("white", "zinc-950"),
        padding=6,
    )


export default BlankSkeleton
''')

_SKELETONS = {
    TemplateId.DASHBOARD: _DASHBOARD,
    TemplateId.CHAT: _CHAT,
    TemplateId.LIST: _LIST,
    TemplateId.TOOL: _TOOL,
    TemplateId.BLANK: _BLANK,
}


def get_templates(language: Language = Language.EN) -> dict[TemplateId, str]:
    """All skeletons rendered in *language* (unknown languages fall back to English)."""
    try:
        strings = TRANSLATIONS[Language(language)]
    except ValueError:
        strings = TRANSLATIONS[Language.EN]
    values = {key: repr(value) if isinstance(value, list) else value for key, value in strings.items()}
    return {template_id: tpl.substitute(values) for template_id, tpl in _SKELETONS.items()}


def get_template(template_id: TemplateId, language: Language = Language.EN) -> str:
    return get_templates(language)[TemplateId(template_id)]
