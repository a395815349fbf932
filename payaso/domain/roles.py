from enum import Enum


class Role(str, Enum):
    recruit = "recruit"
    dr_payaso = "dr_payaso"
    photographer = "photographer"
    volunteer = "volunteer"
    board = "board"
    treasurer = "treasurer"
    admin = "admin"

    @property
    def label(self):
        return ROLE_LABELS[self]

    @classmethod
    def parse(cls, value):
        """Accept an enum member, its value or its display label."""
        if isinstance(value, cls):
            return value
        for role in cls:
            if value == role.value or value == role.label:
                return role
        raise ValueError(f"Unknown role: {value!r}")


ROLE_LABELS = {
    Role.recruit: "Recluta",
    Role.dr_payaso: "Dr. Payaso",
    Role.photographer: "Fotógrafo",
    Role.volunteer: "Otro Voluntario",
    Role.board: "Junta Directiva",
    Role.treasurer: "Tesorero",
    Role.admin: "Super Admin",
}

# Used to pick the initial active role when a user is loaded
ROLE_PRIORITY = (Role.admin, Role.board, Role.dr_payaso, Role.photographer, Role.recruit)


def primary_role(roles):
    for role in ROLE_PRIORITY:
        if role in roles:
            return role
    return Role.volunteer


class RoleCapacityPolicy:
    """Single place where a role is resolved to its capacity bucket and capabilities.

    Visits reserve spots per bucket (recruit, dr_payaso, photographer,
    volunteer). Any role that is not one of the first three consumes the
    volunteer bucket.
    """

    BUCKETS = ("recruit", "dr_payaso", "photographer", "volunteer")

    _bucket_by_role = {
        Role.recruit: "recruit",
        Role.dr_payaso: "dr_payaso",
        Role.photographer: "photographer",
    }

    administrative = frozenset({Role.admin, Role.board})
    staff = frozenset({Role.admin, Role.board, Role.treasurer})
    treasury = frozenset({Role.admin, Role.treasurer})

    def bucket_for(self, role):
        return self._bucket_by_role.get(Role.parse(role), "volunteer")

    def capacity_of(self, capacity, role):
        """Read the role's field from a RoleCapacity."""
        return getattr(capacity, self.bucket_for(role))

    def is_administrative(self, role):
        return Role.parse(role) in self.administrative

    def is_staff(self, role):
        return Role.parse(role) in self.staff

    def can_manage(self, user):
        """Admin screens: administrative active role or super admin flag."""
        return self.is_administrative(user.role) or bool(user.is_super_admin)

    def can_manage_treasury(self, user):
        return self.can_manage(user) or user.role == Role.treasurer

    def can_record_payments(self, user):
        """Payments recorded by these users are stored as already paid."""
        return bool(user.is_super_admin) or user.role in self.treasury


policy = RoleCapacityPolicy()
