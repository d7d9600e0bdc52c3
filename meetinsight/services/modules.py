"""The five fixed insight modules.

Each module carries a display name and the task description that is pasted
verbatim into the first analysis turn. The set is closed on purpose: the
task templates are domain content, not configuration.
"""

from enum import Enum


class UnknownModuleError(ValueError):
    pass


class AnalysisModule(Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"

    @classmethod
    def parse(cls, value) -> "AnalysisModule":
        if isinstance(value, cls):
            return value
        key = (value or "").strip().upper() if isinstance(value, str) else value
        try:
            return cls(key)
        except ValueError:
            raise UnknownModuleError(f"Unknown analysis module: {value!r}") from None

    @property
    def display_name(self) -> str:
        return MODULE_NAMES[self]

    @property
    def task(self) -> str:
        return MODULE_TASKS[self]


MODULE_NAMES = {
    AnalysisModule.A: "Tone & Tension",
    AnalysisModule.B: "Persona Modeling",
    AnalysisModule.C: "Subtext & QBQ",
    AnalysisModule.D: "Power Dynamics",
    AnalysisModule.E: "Summary & Conclusions",
}

MODULE_TASKS = {
    AnalysisModule.A: (
        "Run Module A: atmosphere and tension trajectory analysis.\n"
        "- Describe how mood and tension move through the whole meeting (silences, conflicts, turning points).\n"
        "- Draw a tension timeline using ASCII characters and identify where energy rises, drops, "
        "and where the dominant presence shifts.\n"
        "- Mark the exact timestamps of conflict nodes and cold-silence nodes.\n"
        "Output structure: 1) overall mood, 2) ASCII tension timeline, 3) table of key nodes "
        "(time, speaker, type, evidence quote)."
    ),
    AnalysisModule.B: (
        "Run Module B: persona modeling of the specified participant(s) "
        "(behaviour, decision and language style).\n"
        "- Apply the nine observation dimensions: personality tendency, decision style, "
        "conversational inertia, pragmatic habits, emotional management, conflict handling, "
        "relationship orientation, manipulation tendency, language breaks.\n"
        "- For every dimension state separately the explicit observation (with transcript evidence) "
        "and the latent hypothesis (with or without supporting evidence).\n"
        "- Where the data is insufficient say so explicitly: "
        "\"Insufficient data for this dimension, further observation recommended\".\n"
        "Output structure: a nine-row dimension table followed by a \"Character Profile\" section."
    ),
    AnalysisModule.C: (
        "Run Module C: subtext, QBQ (the question behind the question), conclusions and action points.\n"
        "- Extract unspoken strategies, the questions behind the questions, and attitude signals.\n"
        "- Assess whether conclusions are explicit, whether tasks were concretely assigned, "
        "and where responsibility is left vague.\n"
        "Output structure: 1) subtext list with evidence, 2) QBQ pairs (surface question -> real question), "
        "3) conclusion summary, 4) layered action items."
    ),
    AnalysisModule.D: (
        "Run Module D: power structure and role flow observation.\n"
        "- Assess who drives the discourse and who steers topic changes.\n"
        "- Extract who allies with whom, who sets the direction, and who is marginalised.\n"
        "Output structure: 1) speaking-right transfer map, 2) discourse attack/defence nodes with "
        "timestamps, 3) alliance and marginalisation summary."
    ),
    AnalysisModule.E: (
        "Run Module E: meeting summary and conclusion reconstruction.\n"
        "- Constraint: produce only fact organisation, verbatim source quotes and layered task assignment; "
        "never invent conclusions or add commentary.\n"
        "- Every summary paragraph must link to its source sentence and contain: [Source Quote] "
        "[Category] [Task Chain (assigner -> owner -> deadline)].\n"
        "- Where something cannot be determined, tag it \"Ambiguous signal: needs human confirmation\"."
    ),
}
