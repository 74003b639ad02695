"""
Exceptions du domaine de synchronisation.

Les erreurs réseau ne sont pas levées : les stratégies fournisseur les
convertissent en FetchResult. Ces exceptions couvrent les échecs qui doivent
interrompre une synchronisation entière.
"""


class LibrarySyncError(Exception):
    """Erreur de base du moteur de synchronisation."""


class SectionListingError(LibrarySyncError):
    """
    Impossible d'énumérer les sections d'une intégration.

    Attributes:
        integration_id: ID de l'intégration concernée
        reason: Message d'erreur remonte par le fournisseur
    """

    def __init__(self, integration_id: str, reason: str) -> None:
        self.integration_id = integration_id
        self.reason = reason
        super().__init__(f"Impossible de lister les sections: {reason}")


class UnsupportedIntegrationError(LibrarySyncError):
    """Aucune stratégie de synchronisation pour ce type d'intégration."""

    def __init__(self, integration_type: str) -> None:
        self.integration_type = integration_type
        super().__init__(f"Type d'intégration non supporté: {integration_type}")
