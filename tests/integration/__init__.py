"""
Tests d'intégration de cassius-api.

PostgreSQL et Redis tournent dans docker-compose.test.yaml, sur les ports
5433 et 6380 pour ne pas gêner les services de développement.

Usage:
    docker compose -f docker-compose.test.yaml up -d --wait
    pytest -m integration
    docker compose -f docker-compose.test.yaml down
"""
