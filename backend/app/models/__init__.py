# Importe tous les modèles pour enregistrer leurs tables dans Base.metadata
# avant que SQLAlchemy tente de résoudre les clés étrangères inter-modèles.

from app.models.user import User  # noqa: F401  doit précéder events et inscriptions
from app.models.event import Event  # noqa: F401
from app.models.inscription import Inscription  # noqa: F401
from app.models.payment import Payment  # noqa: F401
