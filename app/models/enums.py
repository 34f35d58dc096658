import enum


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    PENGELOLA = "pengelola"  # manages the documents of one OPD
    STAF = "staf"            # read-only member of one OPD


class DocumentType(str, enum.Enum):
    PDF = "pdf"
    IMAGE = "image"
    WORD = "word"
    EXCEL = "excel"
