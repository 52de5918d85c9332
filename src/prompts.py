"""
Prompt templates and user-facing strings.

Kept in one place so that session and artifact code only format them.
"""

from models import Role, SeedTurn

SYSTEM_INSTRUCTION = """**ROLE:**
You are "ARCH" (reseARCH + ARCHitect). You are an expert methodologist and high-level scientific project manager. Your goal is not to do the work for the user, but to interrogate them socratically to structure rigorous, viable, and fundable research projects.

**OPERATIONAL PHILOSOPHY:**
"Rigor First". Do not accept vague assertions. If the user says "I want to study X", ask about variables, causality, and data availability before moving to the schedule.

**IMPORTANT FORMATTING RULE:**
- **DIRECT QUESTIONS TO THE USER MUST BE IN BOLD.**
- Use LaTeX for formulas ($inline$ or $$block$$).
- Use Markdown tables for schedules/data.

**PHASES (Follow this logical order):**

1.  **PHASE 1: STRUCTURE & DESIGN**
    *   Validate the Question.
    *   Formulate Hypotheses ($H_0$, $H_1$).
    *   Define Objectives.

2.  **PHASE 2: VARIABLE MODELING**
    *   Independent ($X$), Dependent ($Y$), Confounding ($Z$).
    *   Challenge causality logic.

3.  **PHASE 3: RESOURCE MAPPING**
    *   Inputs (Literature, External Data).
    *   Outputs (Generated Data).

4.  **PHASE 4: EXECUTION**
    *   WBS (Work Breakdown Structure).
    *   Validation points.

**COMMANDS:**
* `/modelar`: Go to Phase 2.
* `/cronograma`: Generate WBS.
* `/gap`: Gap analysis.

**LANGUAGE:**
Adapt to the user's language (Spanish or English).
"""

GREETING = (
    "Bienvenido a **ARCH**. Soy su Arquitecto de Investigación. Para comenzar la **Fase 1**, "
    "por favor enuncie su idea preliminar. **¿Qué fenómeno desea estudiar?**"
)

DEFAULT_OPENING = (
    SeedTurn(Role.USER, "Hola, estoy listo para estructurar mi investigación."),
    SeedTurn(Role.ASSISTANT, GREETING),
)

# Seed for the restore path: acknowledgement pair, context turn, acknowledgement.
RESTORE_START = "System Start."
RESTORE_READY = "Ready."
RESTORE_LOADED = "Context Loaded."

RESTORATION_CONTEXT_TEMPLATE = """**{title_heading}**
[METADATA]
TÍTULO: {project_title}
ESTADO: {last_active_phase}

[SUMMARY]
{phases}"""

WIZARD_OPENING = (
    SeedTurn(Role.USER, "Hola, quiero iniciar un proyecto."),
    SeedTurn(Role.ASSISTANT, "Bienvenido a ARCH. Por favor proporcione el contexto inicial."),
)

WIZARD_CONTEXT_TEMPLATE = """[CONTEXT: User Language is {language}]
CONTEXTO INICIAL DEL USUARIO:
- Campo: {field}
- Fenómeno: {phenomenon}
- Hipótesis inicial: {hypothesis}

Por favor, inicia la Fase 1 analizando esta información preliminar."""

WIZARD_KICKOFF = "Analiza mi contexto y arranca la Fase 1."

# =============================================================================
# Extraction prompts
# =============================================================================

SUMMARY_SYSTEM_PROMPT = "You are a research project synthesizer. Extract only final agreements."

SUMMARY_PROMPT = """Analyze the following conversation and extract the CURRENT CONSOLIDATED state.
Ignore discarded ideas. Leave a phase as null if it was not discussed.

<output_requirements>
{format_instructions}
Do not include any additional text, explanations, or Markdown formatting.
</output_requirements>

CONVERSATION:
{conversation}"""

SIMULATION_SYSTEM_PROMPT = "You turn research hypotheses into small numeric models."

SIMULATION_PROMPT = """Based on the conversation, extract hypothesis variables for simulation.
Write one formula for H0 and one for H1 using only numbers, the variable names,
+ - * / ** and parentheses, and the functions sqrt, exp, log, log10, sin, cos, abs, min, max, pow.
The first variable is the free axis of the chart.

<output_requirements>
{format_instructions}
Do not include any additional text, explanations, or Markdown formatting.
</output_requirements>

CONVERSATION:
{conversation}"""

DIAGRAM_SYSTEM_PROMPT = "You map the status of research projects."

DIAGRAM_PROMPT = """Create a structured node-based diagram of the research project status.
Identify key components (Question, Hypothesis, Variables, Methodology).
IMPORTANT: The labels and details MUST be in {language_name}.

<output_requirements>
{format_instructions}
Do not include any additional text, explanations, or Markdown formatting.
</output_requirements>

CONVERSATION:
{conversation}"""

LANGUAGE_NAMES = {"es": "SPANISH", "en": "ENGLISH"}

# =============================================================================
# User-facing strings
# =============================================================================

STRINGS = {
    "es": {
        "welcome": "Bienvenido al sistema **ARCH**. Soy su Arquitecto de Investigación.",
        "restore_title": "PROYECTO RESTAURADO",
        "restore_msg": "Recuperando contexto...",
        "restore_action": (
            "Analiza el contexto anterior, resume brevemente en qué punto quedamos "
            "y cuál es el siguiente paso lógico."
        ),
        "sim_error": "No se pudo generar la configuración de la simulación.",
        "map_empty": "No hay datos del diagrama disponibles.",
        "stream_error": "Error.",
    },
    "en": {
        "welcome": "Welcome to the **ARCH** system. I am your Research Architect.",
        "restore_title": "PROJECT RESTORED",
        "restore_msg": "Recovering context...",
        "restore_action": (
            "Analyze the previous context, briefly summarize where we left off, "
            "and state the next logical step."
        ),
        "sim_error": "Could not generate simulation configuration.",
        "map_empty": "No diagram data available.",
        "stream_error": "Error.",
    },
}


def text(language: str, key: str) -> str:
    """Look up a user-facing string, falling back to Spanish."""
    return STRINGS.get(language, STRINGS["es"])[key]
