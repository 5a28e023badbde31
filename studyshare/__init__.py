"""StudyShare: share, find and rate study notes."""
