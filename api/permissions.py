from rest_framework.permissions import BasePermission


def _payload(request):
    tok = getattr(request, "auth", None)
    if tok is None:
        return {}
    return getattr(tok, "payload", tok)


def _roles(request):
    payload = _payload(request)
    roles = set(payload.get("realm_access", {}).get("roles", []))
    for v in payload.get("resource_access", {}).values():
        roles |= set(v.get("roles", []))
    # On supporte aussi un header override pour dev/local si besoin
    hdr = request.META.get("HTTP_X_ROLES")
    if hdr:
        roles |= set([r.strip() for r in hdr.split(",") if r.strip()])
    return roles


class IsStaff(BasePermission):
    """ Personnel habilité à lire/écrire les comptes rendus (médecin, labo, imagerie…). """
    STAFF_ROLES = {
        "ROLE_MEDECIN", "ROLE_INFIRMIER", "ROLE_ADMIN_CHU", "ROLE_LAB", "ROLE_RADIOLOGIE"
    }

    def has_permission(self, request, view):
        return len(_roles(request) & self.STAFF_ROLES) > 0


class HasKCRealmRole(BasePermission):
    """
    Rôle Keycloak du realm, porté par le token (pas de header override).
    Dans la vue: required_roles = {"admin"}
    """
    def has_permission(self, request, view):
        required = getattr(view, "required_roles", set())
        if not required:
            return True
        payload = _payload(request)
        if not payload:
            return False
        roles = set(payload.get("realm_access", {}).get("roles", []))
        return bool(required & roles)
