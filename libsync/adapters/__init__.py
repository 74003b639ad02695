"""
Couche adaptateurs.

Implémentations concrètes des ports du domaine :
- api/ : politique de retry (tenacity)
- providers/ : stratégies Plex, Jellyfin, Emby (httpx)
- cache/ : cache disque des vignettes
- broadcast/ : diffusion des événements de progression
- integrations/ : lecture des intégrations configurées
- cli/ : interface en ligne de commande (typer, rich)
"""
