# core/auditoria.py
import logging
from collections import deque
from datetime import datetime
from typing import Any, Dict, List, Optional

logger = logging.getLogger("auditoria")

MAX_LOGS = 1000


class AuditLogger:
    """Trilha de auditoria em memória: guarda só as últimas MAX_LOGS ações."""

    def __init__(self, max_logs: int = MAX_LOGS):
        self.logs: deque = deque(maxlen=max_logs)

    def log(self, usuario_id: Optional[str], action: str, resource: str,
            resource_id: Any = None, details: Any = None,
            ip: Optional[str] = None, user_agent: Optional[str] = None) -> Dict[str, Any]:
        entrada = {
            "userId": usuario_id or "anonymous",
            "action": action,
            "resource": resource,
            "resourceId": None if resource_id is None else str(resource_id),
            "details": details,
            "ip": ip or "unknown",
            "userAgent": user_agent or "unknown",
            "timestamp": datetime.now().isoformat(),
        }
        self.logs.append(entrada)
        logger.info(
            "[AUDIT] User %s performed %s on %s%s",
            entrada["userId"], action, resource,
            f" (ID: {entrada['resourceId']})" if entrada["resourceId"] else "",
        )
        return entrada

    def get_logs(self, limit: int = 50, usuario_id: Optional[str] = None,
                 resource: Optional[str] = None) -> List[Dict[str, Any]]:
        """Mais recentes primeiro."""
        out = []
        for entrada in reversed(self.logs):
            if usuario_id and entrada["userId"] != usuario_id:
                continue
            if resource and entrada["resource"] != resource:
                continue
            out.append(entrada)
            if len(out) >= limit:
                break
        return out
