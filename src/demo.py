"""
Canned demo case: sleep deprivation and abstract reasoning.

Loaded by the demo origin so the simulator and the project map can be
explored without any extraction call.
"""

from datetime import timedelta

from models import (
    DiagramData,
    DiagramNode,
    Message,
    Role,
    SimulationConfig,
    SimulationVariable,
    utc_now,
)

DEMO_TRANSCRIPT = (
    (Role.ASSISTANT,
     "Bienvenido a **ARCH**. Soy su Arquitecto de Investigación. Para comenzar la **Fase 1**, "
     "por favor enuncie su idea preliminar. **¿Qué fenómeno desea estudiar?**"),
    (Role.USER,
     "Quiero investigar el efecto de la privación de sueño en el rendimiento cognitivo de "
     "estudiantes universitarios de ingeniería."),
    (Role.ASSISTANT,
     "Excelente punto de partida. Para garantizar rigor científico, debemos operacionalizar esto.\n\n"
     "**¿Cuál sería su Variable Independiente (X) específica y cómo planea manipularla?**"),
    (Role.USER,
     "La Variable Independiente (X) serán las horas de sueño permitidas la noche anterior al test "
     "(0, 4, y 8 horas)."),
    (Role.ASSISTANT,
     "Entendido. Ahora la Variable Dependiente (Y). **¿Qué instrumento métrico utilizará para medir "
     "el 'rendimiento cognitivo'?**"),
    (Role.USER,
     "Usaré el Test de Matrices Progresivas de Raven para medir razonamiento abstracto."),
    (Role.ASSISTANT,
     "Muy bien. Hemos definido una estructura causal clara:\n\n"
     "$$X (Sueño) \\rightarrow Y (Puntaje Raven)$$\n\n"
     "Ahora, formulemos las hipótesis estadísticas.\n\n"
     "$H_0$: $\\mu_{0h} = \\mu_{4h} = \\mu_{8h}$ (No hay diferencia significativa).\n"
     "$H_1$: $\\mu_{8h} > \\mu_{4h} > \\mu_{0h}$ (A mayor sueño, mayor rendimiento).\n\n"
     "Estamos listos para modelar las variables de confusión. **¿Ha considerado el consumo de "
     "cafeína como variable interviniente?**"),
)


def demo_messages() -> list[Message]:
    """Fresh Message objects for the demo transcript, spaced ten seconds apart."""
    now = utc_now()
    count = len(DEMO_TRANSCRIPT)
    messages = []
    for i, (role, text) in enumerate(DEMO_TRANSCRIPT):
        created = now - timedelta(seconds=10 * (count - i))
        messages.append(Message(role=role, text=text, created_at=created))
    return messages


DEMO_SIMULATION_CONFIG = SimulationConfig(
    variables=[
        SimulationVariable(
            name="sleepHours",
            label="Horas de Sueño",
            min=0,
            max=10,
            default_value=4,
            description="Horas de descanso permitidas antes de la evaluación cognitiva.",
        )
    ],
    dependent_label="Puntaje Raven (0-60)",
    null_formula="35",
    alt_formula="20 + 3 * sleepHours",
    explanation=(
        "Modelo Lineal: Se asume que por cada hora adicional de sueño, el puntaje en el test "
        "de Raven aumenta en 3 puntos, partiendo de una base de 20."
    ),
)

DEMO_DIAGRAM = DiagramData(
    nodes=[
        DiagramNode(id="n1", label="Problema", status="completed",
                    details="Disminución de rendimiento cognitivo en estudiantes.", connections=["n2"]),
        DiagramNode(id="n2", label="Hipótesis", status="completed",
                    details="Privación de sueño afecta negativamente el razonamiento abstracto.",
                    connections=["n3"]),
        DiagramNode(id="n3", label="Variables", status="active",
                    details="VI: Horas de sueño (0, 4, 8) | VD: Test Raven.", connections=["n4"]),
        DiagramNode(id="n4", label="Ejecución", status="pending",
                    details="Diseño experimental y recolección de datos.", connections=[]),
    ]
)
