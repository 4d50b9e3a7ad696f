# clinical/base.py
import uuid

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


class UUIDModel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    class Meta:
        abstract = True

    @property
    def uuid(self):
        return self.id


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True, db_index=True)

    class Meta:
        abstract = True


class VoidableModel(models.Model):
    """
    Mixin de suppression logique ("void").
    - Un enregistrement annulé reste en base pour l'audit
    - void() est idempotent : annuler un enregistrement déjà annulé ne fait rien
    - Les sous-classes propagent l'annulation via _void_dependents()
    """
    voided = models.BooleanField(default=False, db_index=True)
    date_voided = models.DateTimeField(null=True, blank=True)
    void_reason = models.CharField(max_length=255, null=True, blank=True)

    class Meta:
        abstract = True

    def clean(self):
        if self.voided and not self.void_reason:
            raise ValidationError("void_reason is required when voided=True.")

    def void(self, reason):
        if self.voided:
            return self
        if not reason or not reason.strip():
            raise ValidationError("A reason is required to void a record.")
        self.voided = True
        self.date_voided = timezone.now()
        self.void_reason = reason
        self.save(update_fields=["voided", "date_voided", "void_reason", "updated_at"])
        self._void_dependents(reason)
        return self

    def _void_dependents(self, reason):
        pass
