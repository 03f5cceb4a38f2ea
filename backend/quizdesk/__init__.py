"""
QuizDesk: password-protected multiple-choice tests served over HTTP.
"""
