from app.models.user import User, VALID_ROLES, ROLE_APPLICANT, ROLE_RECRUITER, ROLE_CAREER_TRAINER

__all__ = ["User", "VALID_ROLES", "ROLE_APPLICANT", "ROLE_RECRUITER", "ROLE_CAREER_TRAINER"]
