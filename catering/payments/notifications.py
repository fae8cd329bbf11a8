"""
Notifications lisibles destinées au tuteur (rendues par le front sous forme de toast).
"""
from typing import Any, Dict

VARIANT_DEFAULT = "default"
VARIANT_DESTRUCTIVE = "destructive"


def notification(title: str, description: str, variant: str = VARIANT_DEFAULT) -> Dict[str, Any]:
    return {"title": title, "description": description, "variant": variant}


def payment_success(children_count: int = 1) -> Dict[str, Any]:
    if children_count > 1:
        return notification("Paiement réussi !", f"La commande groupée pour {children_count} enfants est payée.")
    return notification("Paiement réussi !", "Votre commande a bien été créée et payée.")


def payment_pending() -> Dict[str, Any]:
    return notification("Paiement en attente", "Votre paiement est en cours de traitement. Vous serez informé de sa confirmation.")


def payment_error() -> Dict[str, Any]:
    return notification(
        "Paiement échoué",
        "Une erreur est survenue pendant le paiement. Votre panier est conservé, vous pouvez réessayer.",
        VARIANT_DESTRUCTIVE,
    )


def payment_closed() -> Dict[str, Any]:
    return notification("Paiement annulé", "Vous avez fermé la fenêtre de paiement. Votre panier est conservé.")


def payment_failed() -> Dict[str, Any]:
    return notification("Paiement refusé", "Le paiement n'a pas abouti. La commande reste impayée.", VARIANT_DESTRUCTIVE)


def payment_unknown() -> Dict[str, Any]:
    return notification(
        "Statut de paiement inconnu",
        "Nous vérifions votre paiement. La commande reste en attente.",
        VARIANT_DESTRUCTIVE,
    )


def already_settled(payment_status: str) -> Dict[str, Any]:
    return notification("Paiement déjà traité", f"Cette commande est déjà au statut « {payment_status} ».")


def retry_prompt(message: str) -> Dict[str, Any]:
    return notification("Paiement indisponible", f"{message}. Votre panier est conservé, réessayez dans un instant.", VARIANT_DESTRUCTIVE)


def error(message: str) -> Dict[str, Any]:
    return notification("Erreur", message, VARIANT_DESTRUCTIVE)
