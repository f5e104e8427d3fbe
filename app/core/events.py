"""
Façade du système d'événements Cassius.

Backend: Redis Pub/Sub (`app.core.events_redis`).

Sujets publiés:
- cassius.patient.created / cassius.patient.updated
- cassius.operation.created / cassius.operation.deleted
- cassius.surgery_implant.status_changed
- cassius.appointment.completed / cassius.appointment.cancelled
- cassius.flag.created / cassius.flag.resolved
"""

from app.core.events_redis import lifespan, publish

__all__ = ["lifespan", "publish"]
