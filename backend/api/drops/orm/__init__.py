from api.drops.orm.drop_model import DropModel, IssuedCodeModel

__all__ = ["DropModel", "IssuedCodeModel"]
