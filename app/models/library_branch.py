"""Modèle Succursale / Library branch model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class LibraryBranch(Base):
    __tablename__ = "library_branches"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    address: Mapped[str] = mapped_column(String(255), default="")
    manager_id: Mapped[str | None] = mapped_column(String(64))  # profil du responsable / manager profile

    # Relations
    timings: Mapped[list["Timing"]] = relationship(
        back_populates="branch", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<LibraryBranch {self.id} - {self.name}>"
