from django.db import models


class ContentBlob(models.Model):
    """Key-value blob table addressed by the SHA-256 digest of its data."""

    digest = models.CharField(max_length=80, primary_key=True)
    data = models.BinaryField()
    size = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Blob {self.digest} ({self.size} bytes)"
