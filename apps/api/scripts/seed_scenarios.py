"""
Seed the scenario catalogue and the response template library.

Idempotent: rows are matched on title and skipped when already present.
DRY_RUN by default. Use --commit to persist.

Usage (inside api container):
  python scripts/seed_scenarios.py --commit
  python scripts/seed_scenarios.py --commit --only templates
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Dict, List

from sqlalchemy.orm import Session

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.database import get_db_sync  # noqa: E402
from core.logging import setup_logging  # noqa: E402
from models import ResponseTemplate, Scenario  # noqa: E402

logger = logging.getLogger(__name__)


SCENARIOS: List[Dict] = [
    {
        "title": "Consulta de Saldo - Nivel Básico",
        "description": "Cliente llama para consultar el saldo de su cuenta corriente. Escenario simple para practicar atención básica y protocolo de verificación.",
        "category": "informative",
        "complexity": 1,
        "estimated_duration": 5,
        "system_prompt": "Eres un cliente bancario que llama para consultar su saldo. Eres amable y cooperativo. Proporcionas tu información cuando se te solicita.",
        "client_profile": {
            "emotion": "neutral",
            "initial_context": "El cliente necesita conocer su saldo actual",
            "initial_message": "Hola, buenos días. Quisiera saber cuánto saldo tengo en mi cuenta corriente.",
        },
        "evaluation_criteria": {"empathy": 20, "clarity": 30, "protocol": 30, "resolution": 20},
        "ideal_response": "Saludo profesional, verificación de identidad, consulta del saldo, confirmación y despedida cordial.",
        "tags": ["básico", "consulta", "saldo"],
    },
    {
        "title": "Bloqueo de Tarjeta por Pérdida",
        "description": "Cliente reporta pérdida de tarjeta de débito y solicita bloqueo inmediato. Practica manejo de urgencias y protocolo de seguridad.",
        "category": "transactional",
        "complexity": 2,
        "estimated_duration": 8,
        "system_prompt": "Eres un cliente preocupado que perdió su tarjeta de débito. Estás nervioso pero cooperativo. Necesitas bloquearla urgentemente.",
        "client_profile": {
            "emotion": "worried",
            "initial_context": "El cliente perdió su tarjeta y está preocupado por su seguridad",
            "initial_message": "¡Hola! Perdí mi tarjeta de débito y necesito bloquearla urgentemente. ¿Me pueden ayudar?",
        },
        "evaluation_criteria": {"empathy": 25, "clarity": 25, "protocol": 30, "resolution": 20},
        "ideal_response": "Tranquilizar al cliente, verificar identidad, bloquear tarjeta, explicar próximos pasos para reemplazo.",
        "tags": ["intermedio", "bloqueo", "tarjeta", "urgencia"],
    },
    {
        "title": "Reporte de Transacción Fraudulenta",
        "description": "Cliente identifica cargos no reconocidos en su cuenta. Escenario complejo que requiere protocolo de fraude y empatía.",
        "category": "fraud",
        "complexity": 4,
        "estimated_duration": 15,
        "system_prompt": "Eres un cliente muy molesto que descubrió cargos fraudulentos en su cuenta. Estás enojado y exiges solución inmediata. Tienes detalles de las transacciones sospechosas.",
        "client_profile": {
            "emotion": "angry",
            "initial_context": "El cliente descubrió transacciones fraudulentas y está muy molesto",
            "initial_message": "¡Necesito hablar con alguien YA! Hay cargos en mi cuenta que yo no hice. ¡Esto es un robo!",
        },
        "evaluation_criteria": {"empathy": 30, "clarity": 20, "protocol": 35, "resolution": 15},
        "ideal_response": "Mantener calma, mostrar empatía, seguir protocolo de fraude, documentar transacciones, iniciar investigación, explicar proceso y tiempos.",
        "tags": ["avanzado", "fraude", "seguridad", "conflicto"],
    },
    {
        "title": "Sospecha de Lavado de Activos",
        "description": "Cliente realiza múltiples transacciones sospechosas. Escenario de máxima complejidad que requiere protocolo regulatorio estricto.",
        "category": "money_laundering",
        "complexity": 5,
        "estimated_duration": 20,
        "system_prompt": "Eres un cliente que intenta realizar transacciones inusuales. Eres evasivo con las preguntas sobre el origen de los fondos. Intentas presionar para que se procesen las transacciones rápidamente.",
        "client_profile": {
            "emotion": "defensive",
            "initial_context": "El cliente quiere realizar transacciones sospechosas y evita dar explicaciones claras",
            "initial_message": "Necesito transferir una suma importante a varias cuentas diferentes. ¿Pueden procesarlo hoy mismo?",
        },
        "evaluation_criteria": {"empathy": 15, "clarity": 20, "protocol": 45, "resolution": 20},
        "ideal_response": "Seguir estrictamente protocolo KYC/AML, hacer preguntas obligatorias, documentar respuestas, escalar a compliance si es necesario, no procesar hasta completar verificaciones.",
        "tags": ["experto", "lavado", "compliance", "regulatorio"],
    },
    {
        "title": "Solicitud de Crédito Personal",
        "description": "Cliente consulta sobre opciones de crédito personal. Practica asesoramiento financiero y presentación de productos.",
        "category": "credit",
        "complexity": 3,
        "estimated_duration": 12,
        "system_prompt": "Eres un cliente interesado en obtener un crédito personal. Tienes preguntas sobre tasas, plazos y requisitos. Eres analítico y quieres comparar opciones.",
        "client_profile": {
            "emotion": "curious",
            "initial_context": "El cliente está evaluando opciones de crédito para un proyecto personal",
            "initial_message": "Buenos días, estoy interesado en solicitar un crédito personal. ¿Qué opciones tienen disponibles?",
        },
        "evaluation_criteria": {"empathy": 20, "clarity": 35, "protocol": 25, "resolution": 20},
        "ideal_response": "Entender necesidad del cliente, explicar opciones claramente, detallar requisitos, tasas y plazos, guiar proceso de solicitud.",
        "tags": ["intermedio", "crédito", "asesoramiento", "productos"],
    },
    {
        "title": "Reclamo por Cargo Incorrecto",
        "description": "Cliente reclama por un cargo que considera incorrecto. Practica manejo de quejas y resolución de conflictos.",
        "category": "complaint",
        "complexity": 3,
        "estimated_duration": 10,
        "system_prompt": "Eres un cliente molesto por un cargo que consideras incorrecto en tu estado de cuenta. Quieres una explicación y solución. Puedes ser insistente pero razonable.",
        "client_profile": {
            "emotion": "frustrated",
            "initial_context": "El cliente vio un cargo que no reconoce y quiere aclaración",
            "initial_message": "Hola, tengo un cargo en mi cuenta que no entiendo. Dice 'comisión por mantenimiento' pero yo tengo cuenta sin costo. ¿Qué pasó?",
        },
        "evaluation_criteria": {"empathy": 30, "clarity": 25, "protocol": 20, "resolution": 25},
        "ideal_response": "Escuchar activamente, mostrar empatía, investigar el cargo, explicar claramente, ofrecer solución o compensación si corresponde.",
        "tags": ["intermedio", "reclamo", "servicio", "resolución"],
    },
    {
        "title": "Asistencia con Banca Digital",
        "description": "Cliente tiene problemas para usar la app móvil del banco. Practica soporte técnico y paciencia didáctica.",
        "category": "digital_channels",
        "complexity": 2,
        "estimated_duration": 10,
        "system_prompt": "Eres un cliente mayor que no está familiarizado con tecnología. Tienes dificultades para usar la app del banco. Necesitas explicaciones paso a paso y eres un poco lento para seguir instrucciones.",
        "client_profile": {
            "emotion": "confused",
            "initial_context": "El cliente no puede acceder a su banca móvil y necesita ayuda técnica",
            "initial_message": "Disculpe, instalé la aplicación del banco en mi teléfono pero no puedo entrar. Me pide un usuario y no sé cuál es.",
        },
        "evaluation_criteria": {"empathy": 30, "clarity": 35, "protocol": 15, "resolution": 20},
        "ideal_response": "Ser paciente, dar instrucciones claras y paso a paso, verificar comprensión, ofrecer alternativas si es necesario.",
        "tags": ["básico", "digital", "soporte", "paciencia"],
    },
    {
        "title": "Robo de Identidad Reportado",
        "description": "Cliente sospecha que su identidad fue robada y usada para abrir cuentas. Escenario crítico de seguridad.",
        "category": "theft",
        "complexity": 5,
        "estimated_duration": 18,
        "system_prompt": "Eres un cliente muy preocupado y asustado porque recibiste notificaciones de cuentas que no abriste. Sospechas robo de identidad. Estás ansioso y necesitas ayuda urgente.",
        "client_profile": {
            "emotion": "scared",
            "initial_context": "El cliente cree ser víctima de robo de identidad",
            "initial_message": "¡Por favor ayúdenme! Recibí correos de que abrieron cuentas a mi nombre pero yo no hice eso. Creo que robaron mi identidad.",
        },
        "evaluation_criteria": {"empathy": 35, "clarity": 20, "protocol": 35, "resolution": 10},
        "ideal_response": "Tranquilizar al cliente, seguir protocolo de seguridad, documentar todo, escalar a departamento de fraude, explicar pasos de protección.",
        "tags": ["experto", "robo", "identidad", "seguridad", "crisis"],
    },
]


RESPONSE_TEMPLATES: List[Dict] = [
    {
        "category": "informative",
        "type": "opening",
        "title": "Saludo profesional y verificación de identidad",
        "content": "Buenos días/tardes, mi nombre es [Nombre]. Gracias por comunicarse con [Banco]. Para poder asistirle de manera segura, ¿podría proporcionarme su número de documento de identidad?",
        "context": "Usar al inicio de cualquier consulta informativa para establecer protocolo de seguridad",
        "tags": ["saludo", "verificación", "protocolo"],
        "complexity": 1,
    },
    {
        "category": "informative",
        "type": "closing",
        "title": "Cierre con confirmación de satisfacción",
        "content": "¿Hay algo más en lo que pueda asistirle hoy? ... Perfecto. Gracias por comunicarse con nosotros. Que tenga un excelente día.",
        "context": "Cerrar consultas informativas asegurando satisfacción del cliente",
        "tags": ["cierre", "satisfacción", "cortesía"],
        "complexity": 1,
    },
    {
        "category": "transactional",
        "type": "protocol",
        "title": "Confirmación de datos antes de ejecutar",
        "content": "Antes de procesar la transacción, permítame confirmar los datos: Monto: $[monto], Cuenta destino: [cuenta], Concepto: [concepto]. ¿Es correcto? Una vez confirmado, la operación no podrá revertirse.",
        "context": "Antes de ejecutar cualquier transacción, confirmar todos los detalles",
        "tags": ["confirmación", "seguridad", "irreversible"],
        "complexity": 2,
    },
    {
        "category": "fraud",
        "type": "opening",
        "title": "Respuesta inmediata a reporte de fraude",
        "content": "Entiendo su preocupación y tomaremos acción inmediata. Su seguridad es nuestra prioridad. Voy a iniciar el protocolo de seguridad ahora mismo. ¿Los cargos no reconocidos ya fueron realizados o solo recibió una solicitud sospechosa?",
        "context": "Primera respuesta ante reporte de fraude, transmitir urgencia y control",
        "tags": ["fraude", "urgencia", "seguridad"],
        "complexity": 3,
    },
    {
        "category": "fraud",
        "type": "empathy",
        "title": "Empatía en situación de fraude",
        "content": "Comprendo que esta situación es muy estresante. Quiero asegurarle que estamos aquí para ayudarle y que tomaremos todas las medidas necesarias para resolver esto. No está solo en este proceso.",
        "context": "Mostrar empatía genuina mientras se mantiene profesionalismo",
        "tags": ["empatía", "fraude"],
        "complexity": 3,
    },
    {
        "category": "complaint",
        "type": "objection_handling",
        "title": "Manejo de objeción con validación",
        "content": "Entiendo completamente su punto de vista y tiene razón en sentirse [emoción]. Permítame revisar qué podemos hacer para solucionar esto. ¿Le parece si exploramos juntos las opciones disponibles?",
        "context": "Cuando el cliente expresa desacuerdo o frustración",
        "tags": ["objeción", "validación", "reclamo"],
        "complexity": 3,
    },
    {
        "category": "complaint",
        "type": "closing",
        "title": "Cierre con seguimiento de reclamo",
        "content": "He registrado su reclamo con el número [número]. Recibirá una respuesta en un máximo de [plazo] días hábiles. ¿Hay algo más en lo que pueda asistirle? Nuevamente, lamento las molestias ocasionadas.",
        "context": "Cerrar reclamo asegurando seguimiento",
        "tags": ["cierre", "seguimiento", "reclamo"],
        "complexity": 2,
    },
    {
        "category": "credit",
        "type": "development",
        "title": "Explicación de condiciones crediticias",
        "content": "Basado en su perfil, tenemos las siguientes opciones: [opciones]. La tasa de interés es del [%], el plazo puede ser de [meses/años], y la cuota mensual aproximada sería de $[monto]. ¿Alguna de estas opciones se ajusta a lo que busca?",
        "context": "Presentar opciones de crédito de forma clara",
        "tags": ["crédito", "claridad", "productos"],
        "complexity": 3,
    },
    {
        "category": "digital_channels",
        "type": "development",
        "title": "Guía paso a paso para solución técnica",
        "content": "Vamos a resolver esto juntos. Le voy a guiar paso a paso. Primero, ¿podría verificar si tiene la última versión de la aplicación instalada? Puede verificarlo en [ubicación]. Mientras tanto, yo reviso su cuenta desde mi sistema.",
        "context": "Resolución técnica con paciencia didáctica",
        "tags": ["digital", "paso a paso", "paciencia"],
        "complexity": 2,
    },
    {
        "category": "money_laundering",
        "type": "protocol",
        "title": "Escalamiento a área de cumplimiento",
        "content": "Entiendo. Para proceder con esta operación, necesito que un especialista de nuestro área de cumplimiento revise la documentación. Esto es un procedimiento estándar para transacciones de este tipo. ¿Podría proporcionarme [documentos necesarios]?",
        "context": "Cuando se requiere escalamiento sin alarmar al cliente",
        "tags": ["compliance", "escalamiento", "AML"],
        "complexity": 5,
    },
    {
        "category": "theft",
        "type": "protocol",
        "title": "Recopilación de información para denuncia",
        "content": "Para proceder con la investigación, necesito que me proporcione: 1) Fecha y hora aproximada del robo, 2) Lugar donde ocurrió, 3) Si ya realizó la denuncia policial. Esta información es fundamental para el proceso.",
        "context": "Recopilar información necesaria para investigación",
        "tags": ["robo", "denuncia", "protocolo"],
        "complexity": 3,
    },
]


def seed_scenarios(db: Session) -> int:
    existing = {title for (title,) in db.query(Scenario.title).all()}
    created = 0
    for data in SCENARIOS:
        if data["title"] in existing:
            logger.info(f"Skipping existing scenario: {data['title']}")
            continue
        db.add(Scenario(is_active=True, **data))
        created += 1
    return created


def seed_response_templates(db: Session) -> int:
    existing = {title for (title,) in db.query(ResponseTemplate.title).all()}
    created = 0
    for data in RESPONSE_TEMPLATES:
        if data["title"] in existing:
            continue
        db.add(ResponseTemplate(**data))
        created += 1
    return created


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed scenarios and response templates")
    parser.add_argument("--commit", action="store_true", help="Persist changes (default is dry run)")
    parser.add_argument("--only", choices=["scenarios", "templates"], default=None)
    args = parser.parse_args()

    setup_logging()
    db = get_db_sync()
    try:
        scenarios = seed_scenarios(db) if args.only in (None, "scenarios") else 0
        templates = seed_response_templates(db) if args.only in (None, "templates") else 0

        if args.commit:
            db.commit()
            logger.info(f"Seeded {scenarios} scenarios and {templates} response templates")
        else:
            db.rollback()
            logger.info(f"DRY RUN: would seed {scenarios} scenarios and {templates} response templates")
        return 0
    except Exception as e:
        db.rollback()
        logger.error(f"Seeding failed: {e}", exc_info=True)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
