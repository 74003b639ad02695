"""
LibSync - Synchronisation et cache local des bibliothèques de serveurs média.

Ce package récupère le catalogue complet (films, séries) des serveurs Plex,
Jellyfin et Emby, le normalise dans un modèle canonique, l'indexe dans une
base SQLite interrogeable en plein texte et met en cache les vignettes.

Architecture : Hexagonale (Ports et Adaptateurs)
- core/ : Couche domaine (entités, ports, exceptions)
- services/ : Couche application (orchestration des synchronisations)
- adapters/ : Couche infrastructure (fournisseurs, cache d'images, CLI)
- infrastructure/ : Persistance SQLModel
- web/ : API HTTP FastAPI
"""

__version__ = "0.1.0"
