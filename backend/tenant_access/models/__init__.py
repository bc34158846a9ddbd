# Import models here so Alembic can discover metadata.
from tenant_access.models.account import Account  # noqa: F401
from tenant_access.models.tenant import Tenant  # noqa: F401
from tenant_access.models.membership import Membership  # noqa: F401
from tenant_access.models.invite import Invite  # noqa: F401
