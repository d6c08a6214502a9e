from django.conf import settings
from django.db import models


class Block(models.Model):
    blocker = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="blocks_made")
    blocked_user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="blocks_received"
    )
    reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        app_label = "marketplace"
        constraints = [
            models.UniqueConstraint(fields=["blocker", "blocked_user"], name="unique_block_pair"),
            models.CheckConstraint(
                condition=~models.Q(blocker=models.F("blocked_user")),
                name="block_not_self",
            ),
        ]

    def __str__(self):
        return f"{self.blocker_id} blocks {self.blocked_user_id}"
