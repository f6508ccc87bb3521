"""stacktown: resumable branch workflows for git."""
