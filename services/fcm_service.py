import logging
import os
from typing import Optional

import firebase_admin
from firebase_admin import credentials, exceptions, messaging

import settings

logger = logging.getLogger("halador.fcm")

# Inicializar Firebase Admin (solo una vez)
_initialized = False


def initialize_firebase_admin() -> bool:
    """Inicializar Firebase Admin SDK"""
    global _initialized
    if _initialized:
        return True
    if firebase_admin._apps:
        _initialized = True
        return True

    try:
        cred_path = settings.FIREBASE_CREDENTIALS_PATH
        if os.path.exists(cred_path):
            firebase_admin.initialize_app(credentials.Certificate(cred_path))
            _initialized = True
            logger.info("Firebase Admin inicializado con: %s", cred_path)
        elif os.getenv("GOOGLE_APPLICATION_CREDENTIALS"):
            firebase_admin.initialize_app()
            _initialized = True
            logger.info("Firebase Admin inicializado desde variable de entorno")
        else:
            logger.warning("Archivo de credenciales no encontrado: %s", cred_path)
    except (ValueError, OSError) as e:
        logger.error("Error inicializando Firebase Admin: %s", e)
        _initialized = False
    return _initialized


def send_notification(
    fcm_token: str,
    title: str,
    body: str,
    data: Optional[dict] = None
) -> bool:
    """Enviar una notificación push a un dispositivo"""
    if not fcm_token or not initialize_firebase_admin():
        return False

    try:
        message = messaging.Message(
            notification=messaging.Notification(
                title=title,
                body=body,
            ),
            data={k: str(v) for k, v in (data or {}).items()},
            token=fcm_token,
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(
                    aps=messaging.Aps(
                        badge=1,
                        sound="default",
                    ),
                ),
            ),
            android=messaging.AndroidConfig(
                priority="high",
                notification=messaging.AndroidNotification(
                    sound="default",
                    channel_id="high_importance_channel",
                ),
            ),
        )

        response = messaging.send(message)
        logger.info("Notificación enviada: %s", response)
        return True
    except (exceptions.FirebaseError, ValueError) as e:
        logger.warning("Error enviando notificación: %s", e)
        return False


def send_notification_to_multiple(
    fcm_tokens: list[str],
    title: str,
    body: str,
    data: Optional[dict] = None
) -> dict:
    """Enviar notificación a múltiples dispositivos"""
    fcm_tokens = [t for t in fcm_tokens if t]
    if not fcm_tokens or not initialize_firebase_admin():
        return {"success": 0, "failure": len(fcm_tokens)}

    try:
        message = messaging.MulticastMessage(
            notification=messaging.Notification(
                title=title,
                body=body,
            ),
            data={k: str(v) for k, v in (data or {}).items()},
            tokens=fcm_tokens,
        )

        response = messaging.send_each_for_multicast(message)
        return {
            "success": response.success_count,
            "failure": response.failure_count,
        }
    except (exceptions.FirebaseError, ValueError) as e:
        logger.warning("Error enviando notificaciones múltiples: %s", e)
        return {"success": 0, "failure": len(fcm_tokens)}
