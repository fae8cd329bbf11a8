"""
Taxonomie des erreurs métier du checkout.
- ValidationError: entrée invalide (panier vide, enfant manquant), jamais rejouée automatiquement.
- PersistenceError: stockage injoignable ou contrainte violée (la clé dupliquée est récupérée en amont).
- GatewayError: passerelle de paiement indisponible, rejouable par l'utilisateur.
- ReconciliationAmbiguity: statut de callback non reconnu, la commande reste 'pending'.
Les vues transforment ces erreurs en réponses HTTP (voir catering.app_setup.exceptions).
"""
from typing import Optional


class CateringError(Exception):
    """Racine des erreurs applicatives; `message` est destiné au tuteur."""

    default_message = "Une erreur est survenue"
    retryable = False

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(CateringError):
    default_message = "Données invalides"


class EmptyCartError(ValidationError):
    default_message = "Le panier est vide"


class PersistenceError(CateringError):
    default_message = "Erreur d'enregistrement, veuillez réessayer"


class DuplicateKeyError(PersistenceError):
    default_message = "Enregistrement déjà existant"


class NotFoundError(PersistenceError):
    default_message = "Enregistrement introuvable"


class TokenPersistError(PersistenceError):
    """Le jeton de session a été émis mais pas enregistré: réessayer l'enregistrement, pas la session."""

    default_message = "Session de paiement créée mais non enregistrée"
    retryable = True

    def __init__(self, token: str, message: Optional[str] = None):
        self.token = token
        super().__init__(message)


class GatewayError(CateringError):
    default_message = "Le service de paiement est indisponible"
    retryable = True


class GatewayUnavailableError(GatewayError):
    default_message = "Le service de paiement ne répond pas, veuillez réessayer"


class WidgetNotLoadedError(GatewayError):
    default_message = "Le module de paiement n'est pas chargé"


class ReconciliationAmbiguity(CateringError):
    default_message = "Statut de paiement inconnu"

    def __init__(self, status: str, message: Optional[str] = None):
        self.status = status
        super().__init__(message or f"Statut de paiement inconnu: {status!r}")
