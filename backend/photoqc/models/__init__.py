# Importe tous les modèles pour enregistrer leurs tables dans Base.metadata
# avant que SQLAlchemy tente de résoudre les clés étrangères inter-modèles.

from photoqc.models.user import User  # noqa: F401  doit précéder submission
from photoqc.models.route import Route, Subsection  # noqa: F401
from photoqc.models.checkpoint import Entity, Checkpoint  # noqa: F401
from photoqc.models.access_grant import SubsectionAllowedEmail  # noqa: F401
from photoqc.models.submission import PhotoSubmission, SubmissionComment  # noqa: F401
from photoqc.models.content_cleanup import PendingContentDeletion  # noqa: F401
