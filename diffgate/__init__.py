"""diffgate: live diff watching, staging and quiz-gated commits for a local git repository."""

__version__ = "0.1.0"
