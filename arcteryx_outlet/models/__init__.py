from arcteryx_outlet.models.models import ProductRecord

__all__ = ["ProductRecord"]
