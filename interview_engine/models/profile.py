"""Candidate context supplied by external collaborators."""

from typing import List, Optional

from pydantic import Field

from .base import BaseModel


class UserProfile(BaseModel):
    """Read-only profile fields used for prompt context."""

    college: Optional[str] = None
    degree: Optional[str] = None
    year: Optional[str] = None
    target_role: Optional[str] = Field(default=None, alias="targetRole")
    experience: Optional[str] = None


class Project(BaseModel):
    name: str
    description: Optional[str] = None
    technologies: List[str] = Field(default_factory=list)


class ExperienceEntry(BaseModel):
    role: str
    company: str
    duration: Optional[str] = None
    description: Optional[str] = None


class EducationEntry(BaseModel):
    degree: str
    institution: str
    year: Optional[str] = None


class ParsedResume(BaseModel):
    """Parsed resume data. Required only for role-specific interviews."""

    skills: List[str] = Field(default_factory=list)
    projects: List[Project] = Field(default_factory=list)
    experience: List[ExperienceEntry] = Field(default_factory=list)
    education: List[EducationEntry] = Field(default_factory=list)
    target_role: Optional[str] = Field(default=None, alias="targetRole")
    experience_level: Optional[str] = Field(default=None, alias="experienceLevel")
