from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    Represents a single configuration parameter required by a client.

    Attributes:
        env_key (str): The raw key of the environment variable, without the client prefix.
        val_type (str): The expected type of the value ("string", "number", "bool" or "list").
        default (str | int | bool | list | None): Default value if the variable is not set. If None, the variable is required.
    """
    env_key: str
    val_type: str
    default: str | int | float | bool | list | None = None


class FolderNamePolicy(BaseModel):
    """
    Uniqueness rule for folder names within one organization.

    Attributes:
        case_sensitive (bool): "Safety" and "safety" are different names when True.
        trim_whitespace (bool): Leading/trailing whitespace is ignored (and stripped before storing) when True.
        conditional_create (bool): Claim the normalised name with a deterministic document id so that
            concurrent creators cannot both succeed.
    """
    case_sensitive: bool = True
    trim_whitespace: bool = True
    conditional_create: bool = True

    def normalize(self, name: str) -> str:
        """Return the comparison key for a folder name under this policy."""
        key = name.strip() if self.trim_whitespace else name
        return key if self.case_sensitive else key.casefold()
