"""Focus Tracker backend: vision interview, onboarding and weekly tracking."""
