"""
Bilingual (fr/en) message templates.

Templates are keyed by (template id, language) and rendered with
``str.format_map``; placeholders missing from the data are left as
``{name}`` so a partially filled message is still readable.
"""
import re
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from educafric.core.exceptions import TemplateNotFoundError

LANGUAGES = ("fr", "en")

STATUS_TRANSLATIONS: Dict[str, Dict[str, str]] = {
    "present": {"fr": "présent(e)", "en": "present"},
    "absent": {"fr": "absent(e)", "en": "absent"},
    "late": {"fr": "en retard", "en": "late"},
    "excused": {"fr": "absent(e) excusé(e)", "en": "excused absence"},
}

STATUS_COLORS: Dict[str, str] = {
    "present": "#28a745",
    "absent": "#dc3545",
    "late": "#ffc107",
    "excused": "#17a2b8",
}
DEFAULT_STATUS_COLOR = "#6c757d"

PAYMENT_METHOD_TRANSLATIONS: Dict[str, Dict[str, str]] = {
    "cash": {"fr": "Espèces", "en": "Cash"},
    "bank": {"fr": "Virement bancaire", "en": "Bank transfer"},
    "mtn_momo": {"fr": "MTN Mobile Money", "en": "MTN Mobile Money"},
    "orange_money": {"fr": "Orange Money", "en": "Orange Money"},
    "stripe": {"fr": "Carte bancaire", "en": "Credit card"},
    "other": {"fr": "Autre", "en": "Other"},
}


def translate_status(status: str, language: str = "fr") -> str:
    return STATUS_TRANSLATIONS.get(status, {}).get(language, status)


def translate_payment_method(method: str, language: str = "fr") -> str:
    return PAYMENT_METHOD_TRANSLATIONS.get(method, {}).get(language, method)


def status_color(status: str) -> str:
    return STATUS_COLORS.get(status, DEFAULT_STATUS_COLOR)


TEMPLATES: Dict[str, Dict[str, str]] = {
    # ---- Attendance (email / PWA) ----
    "attendance.subject": {
        "fr": "🏫 Alerte Présence - {student_name}",
        "en": "🏫 Attendance Alert - {student_name}",
    },
    "attendance.body": {
        "fr": (
            "Bonjour,\n\n"
            "Nous vous informons que votre enfant {student_name} ({class_name}) a été marqué(e) "
            "comme {status_label} le {date}.\n\n"
            "{notes_line}\n\n"
            "{marked_by_line}\n\n"
            "École: {school_name}\n\n"
            "Pour plus d'informations, consultez l'application Educafric ou contactez l'école.\n\n"
            "Cordialement,\nL'équipe {school_name}"
        ),
        "en": (
            "Hello,\n\n"
            "We inform you that your child {student_name} ({class_name}) was marked as "
            "{status_label} on {date}.\n\n"
            "{notes_line}\n\n"
            "{marked_by_line}\n\n"
            "School: {school_name}\n\n"
            "For more information, check the Educafric app or contact the school.\n\n"
            "Best regards,\n{school_name} Team"
        ),
    },
    "attendance.notes_line": {"fr": "Note: {notes}", "en": "Note: {notes}"},
    "attendance.marked_by_line": {"fr": "Marqué par: {marked_by}", "en": "Marked by: {marked_by}"},

    # ---- Grades ----
    "grades.subject": {
        "fr": "📊 Nouvelles notes - {student_name}",
        "en": "📊 New grades - {student_name}",
    },
    "grades.body": {
        "fr": (
            "Bonjour,\n\nDe nouveaux résultats sont disponibles pour {student_name}.\n\n"
            "Matière: {subject_name}\nNote: {grade}\nPériode: {period}\n"
            "Moyenne de classe: {class_average}\n\n"
            "Consultez le bulletin complet sur l'application Educafric."
        ),
        "en": (
            "Hello,\n\nNew results are available for {student_name}.\n\n"
            "Subject: {subject_name}\nGrade: {grade}\nPeriod: {period}\n"
            "Class average: {class_average}\n\n"
            "Check the full report card in the Educafric app."
        ),
    },

    # ---- Payments ----
    "payments.subject": {
        "fr": "💳 Confirmation de paiement - {amount}",
        "en": "💳 Payment confirmation - {amount}",
    },
    "payments.body": {
        "fr": (
            "Bonjour {recipient_name},\n\nNous confirmons la réception d'un paiement de {amount} "
            "via {payment_method}.\n\nDescription: {description}\nTransaction: {transaction_id}\n\n"
            "Merci pour votre confiance."
        ),
        "en": (
            "Hello {recipient_name},\n\nWe confirm receipt of a payment of {amount} "
            "via {payment_method}.\n\nDescription: {description}\nTransaction: {transaction_id}\n\n"
            "Thank you for your trust."
        ),
    },

    # ---- Geolocation ----
    "geolocation.subject": {
        "fr": "🚨 Alerte GPS - {student_name}",
        "en": "🚨 GPS Alert - {student_name}",
    },
    "geolocation.body": {
        "fr": (
            "🚨 Alerte GPS - {student_name}\n\nType: {alert_type}\n{zone_line}\n"
            "Position: {location}\nHeure: {timestamp}\n\n"
            "Pour plus de détails, consultez l'app Educafric.\n\nSupport: {support_phone}"
        ),
        "en": (
            "🚨 GPS Alert - {student_name}\n\nType: {alert_type}\n{zone_line}\n"
            "Location: {location}\nTime: {timestamp}\n\n"
            "For more details, check the Educafric app.\n\nSupport: {support_phone}"
        ),
    },
    "geolocation.zone_line": {"fr": "Zone: {zone_name}", "en": "Zone: {zone_name}"},

    # ---- Online classes ----
    "onlineClasses.subject": {
        "fr": "🎥 Cours en ligne - {course_name}",
        "en": "🎥 Online class - {course_name}",
    },
    "onlineClasses.body": {
        "fr": (
            "🎥 Cours en Ligne - {student_name}\n\n📚 Cours: {course_name}\n"
            "👨‍🏫 Professeur: {teacher_name}\n⏰ Début: {start_time}\n⏱️ Durée: {duration}\n\n"
            "🔗 Rejoindre le cours:\n{join_link}\n\nSupport: {support_phone}"
        ),
        "en": (
            "🎥 Online Class - {student_name}\n\n📚 Course: {course_name}\n"
            "👨‍🏫 Teacher: {teacher_name}\n⏰ Start: {start_time}\n⏱️ Duration: {duration}\n\n"
            "🔗 Join class:\n{join_link}\n\nSupport: {support_phone}"
        ),
    },

    # ---- Subscriptions ----
    "subscriptions.subject": {
        "fr": "📅 Abonnement Educafric - {plan_name}",
        "en": "📅 Educafric subscription - {plan_name}",
    },
    "subscriptions.body": {
        "fr": (
            "Bonjour {recipient_name},\n\nVotre abonnement {plan_name} est {subscription_status}.\n"
            "Date d'expiration: {expires_at}\n\nSupport: {support_email}"
        ),
        "en": (
            "Hello {recipient_name},\n\nYour {plan_name} subscription is {subscription_status}.\n"
            "Expiry date: {expires_at}\n\nSupport: {support_email}"
        ),
    },

    # ---- Timetable ----
    "timetable.body": {
        "fr": (
            "📅 Modification Emploi du Temps - {student_name}\n\nType: {change_type}\n"
            "Matière: {subject}\nClasse: {class_name}\nProfesseur: {teacher_name}\n"
            "{old_time_line}\n{new_time_line}\n\n"
            "Consultez l'app Educafric pour voir l'emploi du temps complet.\n\nSupport: {support_phone}"
        ),
        "en": (
            "📅 Timetable Change - {student_name}\n\nType: {change_type}\n"
            "Subject: {subject}\nClass: {class_name}\nTeacher: {teacher_name}\n"
            "{old_time_line}\n{new_time_line}\n\n"
            "Check the Educafric app for the complete schedule.\n\nSupport: {support_phone}"
        ),
    },
    "timetable.old_time_line": {"fr": "Ancien horaire: {old_time}", "en": "Old time: {old_time}"},
    "timetable.new_time_line": {"fr": "Nouvel horaire: {new_time}", "en": "New time: {new_time}"},

    # ---- Direct messages ----
    "message.body": {
        "fr": (
            "💬 Nouveau Message - Educafric\n\nDe: {sender_name} ({sender_role})\n\n"
            "\"{message_preview}\"\n\nRépondez via l'app Educafric.\n\nSupport: {support_phone}"
        ),
        "en": (
            "💬 New Message - Educafric\n\nFrom: {sender_name} ({sender_role})\n\n"
            "\"{message_preview}\"\n\nReply via the Educafric app.\n\nSupport: {support_phone}"
        ),
    },

    # ---- WhatsApp Business templates ----
    "whatsapp.absence": {
        "fr": (
            "📚 {school_name}\n\nAbsence/Retard: {student_name}\nDate: {date}\nCours: {period}\n"
            "Motif: {reason}\nTotal ce mois: {monthly_total}\n\nContact école: {school_phone}"
        ),
        "en": (
            "📚 {school_name}\n\nAbsence/Lateness: {student_name}\nDate: {date}\nClass: {period}\n"
            "Reason: {reason}\nTotal this month: {monthly_total}\n\nSchool contact: {school_phone}"
        ),
    },
    "whatsapp.grade": {
        "fr": (
            "📊 {school_name}\n\nNouvelle note pour {student_name}\nMatière: {subject_name}\n"
            "Note: {grade}\nProfesseur: {teacher_name}\nMoyenne de classe: {class_average} {trend}\n{comment}"
        ),
        "en": (
            "📊 {school_name}\n\nNew grade for {student_name}\nSubject: {subject_name}\n"
            "Grade: {grade}\nTeacher: {teacher_name}\nClass average: {class_average} {trend}\n{comment}"
        ),
    },
    "whatsapp.payment": {
        "fr": (
            "💳 {school_name}\n\nPaiement - {student_name}\nMontant: {amount}\nType: {payment_type}\n"
            "Échéance: {due_date}\n\nContact: {school_phone}"
        ),
        "en": (
            "💳 {school_name}\n\nPayment - {student_name}\nAmount: {amount}\nType: {payment_type}\n"
            "Due date: {due_date}\n\nContact: {school_phone}"
        ),
    },

    # ---- Click-to-chat (prefilled, never sent by the server) ----
    "absence_alert": {
        "fr": "Alerte : {student_name} était absent(e) le {date}. Motif : {reason}.",
        "en": "Alert: {student_name} was absent on {date}. Reason: {reason}.",
    },
    "payment_reminder": {
        "fr": "Rappel : Paiement en attente pour {student_name}. Montant : {amount}. Échéance : {due_date}.",
        "en": "Reminder: Payment pending for {student_name}. Amount: {amount}. Due: {due_date}.",
    },
    "grade_available": {
        "fr": "Les notes de {student_name} pour {subject} sont disponibles. Moyenne : {average}/20. Consultez le portail.",
        "en": "{student_name}'s grades for {subject} are available. Average: {average}/20. Check portal.",
    },
    "contact_support": {
        "fr": "Bonjour, j'ai besoin d'aide concernant {issue_type}. Merci.",
        "en": "Hello, I need help with {issue_type}. Thank you.",
    },

    # ---- Fee queue ----
    "fee.reminder.title": {
        "fr": "Rappel: Frais de scolarité à échéance",
        "en": "Reminder: School Fees Due Soon",
    },
    "fee.reminder.message": {
        "fr": (
            "Cher(e) {first_name}, le paiement de {amount} pour \"{fee_name}\" est dû le {due_date}. "
            "Veuillez effectuer le paiement à temps pour éviter les pénalités."
        ),
        "en": (
            "Dear {first_name}, the payment of {amount} for \"{fee_name}\" is due on {due_date}. "
            "Please make the payment on time to avoid penalties."
        ),
    },
    "fee.overdue.title": {
        "fr": "URGENT: Frais de scolarité en retard",
        "en": "URGENT: School Fees Overdue",
    },
    "fee.overdue.message": {
        "fr": (
            "Cher(e) {first_name}, le paiement de {amount} pour \"{fee_name}\" était dû le {due_date} "
            "et n'a pas été effectué. Veuillez régulariser votre situation dans les plus brefs délais."
        ),
        "en": (
            "Dear {first_name}, the payment of {amount} for \"{fee_name}\" was due on {due_date} "
            "and has not been paid. Please settle your account as soon as possible."
        ),
    },
    "fee.receipt.title": {
        "fr": "Reçu de paiement - {receipt_number}",
        "en": "Payment Receipt - {receipt_number}",
    },
    "fee.receipt.message": {
        "fr": (
            "Cher(e) {first_name}, nous confirmons la réception de votre paiement de {amount} "
            "via {payment_method}. Numéro de reçu: {receipt_number}. Merci!\n"
            "Réf: {receipt_number} | {raw_amount} {currency}"
        ),
        "en": (
            "Dear {first_name}, we confirm receipt of your payment of {amount} "
            "via {payment_method}. Receipt number: {receipt_number}. Thank you!\n"
            "Ref: {receipt_number} | {raw_amount} {currency}"
        ),
    },
}


class _KeepMissing(dict):
    def __missing__(self, key):
        return "{" + key + "}"


_BLANK_RUNS = re.compile(r"\n{3,}")


class MessageTemplateRegistry:
    """Lookup and rendering of bilingual templates."""

    def __init__(self, templates: Optional[Mapping[str, Mapping[str, str]]] = None):
        self._templates: Dict[Tuple[str, str], str] = {}
        for template_id, by_language in (templates or TEMPLATES).items():
            for language, text in by_language.items():
                self._templates[(template_id, language)] = text

    def register(self, template_id: str, language: str, text: str) -> None:
        self._templates[(template_id, language)] = text

    def has(self, template_id: str, language: str = "fr") -> bool:
        return (template_id, language) in self._templates

    def template_ids(self) -> Iterable[str]:
        return sorted({template_id for template_id, _ in self._templates})

    def render(self, template_id: str, language: str, data: Optional[Mapping[str, Any]] = None) -> str:
        text = self._templates.get((template_id, language))
        if text is None:
            raise TemplateNotFoundError(template_id, language)
        values = _KeepMissing({k: "" if v is None else v for k, v in (data or {}).items()})
        rendered = text.format_map(values)
        return _BLANK_RUNS.sub("\n\n", rendered).strip()

    def render_optional(self, template_id: str, language: str, value: Any, key: str) -> str:
        """Render a one-line template only when ``value`` is set, else ''."""
        if value in (None, ""):
            return ""
        return self.render(template_id, language, {key: value})

    def render_bilingual(self, template_id: str, data: Optional[Mapping[str, Any]] = None,
                         data_en: Optional[Mapping[str, Any]] = None) -> Dict[str, str]:
        return {
            "fr": self.render(template_id, "fr", data),
            "en": self.render(template_id, "en", data_en if data_en is not None else data),
        }


message_templates = MessageTemplateRegistry()


def render_template(template_id: str, language: str, data: Optional[Mapping[str, Any]] = None) -> str:
    return message_templates.render(template_id, language, data)
