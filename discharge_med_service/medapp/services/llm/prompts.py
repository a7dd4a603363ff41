# medapp/services/llm/prompts.py
from typing import Iterable

from medapp.schemas.models import Medication
from medapp.services.scheduler import REMINDER_TIMES

# ---------------------------
# Bullet dialect
# ---------------------------
BULLET_SYSTEM_PROMPT = (
    "You are a medical assistant that extracts medication information from discharge summaries."
)

BULLET_USER_TEMPLATE = (
    "Extract medication information from this medical text. Format each medication exactly like this:\n"
    "\n"
    "MEDICATION:\n"
    "- Name: Amoxicillin\n"
    "- Dosage: 500mg\n"
    "- Frequency: Three times daily\n"
    "- Duration: 7 days\n"
    "- Instructions: Take with food\n"
    "\n"
    "Here's the text to analyze:\n"
    "{summary}"
)

# ---------------------------
# JSON dialect
# ---------------------------
JSON_SYSTEM_PROMPT = (
    "You are a medical assistant that extracts medication information from discharge summaries "
    "and returns JSON format."
)

JSON_USER_TEMPLATE = (
    "Extract medication information from the following discharge summary. For each medication, provide:\n"
    "1. Name of medication\n"
    "2. Dosage\n"
    "3. Frequency (be specific about timing, e.g., \"three times a day\", \"after breakfast\", \"before bed\")\n"
    "4. Duration (if specified)\n"
    "\n"
    "Format the response as a JSON array of medications. Example format:\n"
    "[\n"
    "  {{\n"
    "    \"name\": \"Amoxicillin\",\n"
    "    \"dosage\": \"500mg\",\n"
    "    \"frequency\": \"three times a day\",\n"
    "    \"duration\": \"7 days\"\n"
    "  }}\n"
    "]\n"
    "\n"
    "Important: For frequency, use specific timing patterns like:\n"
    "{frequency_phrases}\n"
    "\n"
    "Discharge Summary:\n"
    "{summary}"
)

# ---------------------------
# Question answering
# ---------------------------
CHAT_SYSTEM_PROMPT = (
    "You are a helpful medical assistant chatbot that answers questions about prescribed medications."
)

CHAT_GUIDELINES = (
    "1. Only answer questions about the medications listed above\n"
    "2. If asked about side effects, always advise to consult a healthcare provider\n"
    "3. Keep responses clear, concise, and easy to understand\n"
    "4. If you cannot answer based on the information provided, say so\n"
    "5. Never recommend medications or changes to the prescription\n"
    "6. For questions about timing, refer to the specific schedule provided\n"
    "7. Include reminders about medication safety when relevant"
)

CHAT_USER_TEMPLATE = (
    "You are a helpful medical assistant chatbot. Answer the following question about these prescribed medications:\n"
    "\n"
    "Current Medications:\n"
    "{context}\n"
    "\n"
    "Patient Question: {question}\n"
    "\n"
    "Important guidelines for your response:\n"
    "{guidelines}\n"
    "\n"
    "Please provide your response:"
)

def bullet_extraction_prompt(summary: str) -> str:
    return BULLET_USER_TEMPLATE.format(summary=summary)

def json_extraction_prompt(summary: str) -> str:
    phrases = "\n".join(f"- \"{p}\"" for p in REMINDER_TIMES)
    return JSON_USER_TEMPLATE.format(frequency_phrases=phrases, summary=summary)

def medication_context(meds: Iterable[Medication]) -> str:
    lines = []
    for m in meds:
        times = ", ".join(r.time for r in m.reminders if r.enabled)
        line = f"- {m.name} ({m.dosage}): Take {m.frequency}. {m.instructions}".rstrip()
        if times:
            line += f" Reminders at {times}."
        lines.append(line)
    return "\n".join(lines)

def prescription_question_prompt(question: str, meds: Iterable[Medication]) -> str:
    return CHAT_USER_TEMPLATE.format(
        context=medication_context(meds),
        question=question.strip(),
        guidelines=CHAT_GUIDELINES,
    )
