# Importing every model registers its table on Base.metadata
from pontourbano.models.user import User
from pontourbano.models.report import Report

__all__ = ["User", "Report"]
