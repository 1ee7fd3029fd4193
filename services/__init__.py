"""Domain services for onboarding and OPT visa document tracking."""
