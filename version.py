# Tutor Grading Engine - Build Version

BUILD_VERSION = "1.0.0"
BUILD_DATE = "2026-10-19"
BUILD_ID = "equivalence-grading"

# Changes in this build:
# - Tiered equivalence check (exact, canonical form, numeric substitution)
# - Semantic validator escalation with timeout fallback
# - Practice grading with hint/attempt penalties and mastery tiers
