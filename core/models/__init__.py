"""Core domain models."""

from core.models.line_item import DevisLine
from core.models.lead import Lead, LeadCreate, LeadUpdate, LeadReference
from core.models.devis import Devis, DevisCreate, DevisUpdate
from core.models.chantier import Chantier
from core.models.configuration import Configuration
from core.models.user import AppRole, DEFAULT_ROLE, Profile, UserRole, UserCreate, ManagedUser
from core.status import LeadStatus, DevisStatus

__all__ = [
    # Lead
    "Lead", "LeadCreate", "LeadUpdate", "LeadReference", "LeadStatus", "DevisLine",
    # Devis
    "Devis", "DevisCreate", "DevisUpdate", "DevisStatus",
    # Chantier / Configuration
    "Chantier", "Configuration",
    # Users
    "AppRole", "DEFAULT_ROLE", "Profile", "UserRole", "UserCreate", "ManagedUser",
]
