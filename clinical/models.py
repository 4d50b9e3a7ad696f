# clinical/models.py
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.db import models
from django.utils.translation import gettext_lazy as _

from .base import UUIDModel, TimeStampedModel, VoidableModel


class Patient(UUIDModel, TimeStampedModel):
    """
    Identité patient (MPI). Seul le nom sert à l'affichage des références FHIR.
    """
    identifier = models.CharField(max_length=128, unique=True, db_index=True)
    given_name = models.CharField(max_length=120, null=True, blank=True)
    family_name = models.CharField(max_length=120, null=True, blank=True)

    birth_date = models.DateField(null=True, blank=True)
    sex = models.CharField(
        max_length=1,
        choices=[("M", "Male"), ("F", "Female"), ("O", "Other")],
        null=True, blank=True
    )

    class Meta:
        verbose_name = _("Patient")
        verbose_name_plural = _("Patients")
        indexes = [
            models.Index(fields=["family_name", "given_name"]),
        ]

    @property
    def full_name(self):
        return f"{self.given_name or ''} {self.family_name or ''}".strip()

    def __str__(self):
        label = self.identifier
        if self.full_name:
            label = f"{self.full_name} ({self.identifier})"
        return label


class Provider(UUIDModel, TimeStampedModel):
    identifier = models.CharField(max_length=64, unique=True, db_index=True)
    name = models.CharField(max_length=255)
    active = models.BooleanField(default=True)

    class Meta:
        verbose_name = _("Professionnel de santé")
        verbose_name_plural = _("Professionnels de santé")
        indexes = [
            models.Index(fields=["active"]),
        ]

    def __str__(self):
        return f"{self.name} [{self.identifier}]"


class Concept(UUIDModel, TimeStampedModel):
    """
    Dictionnaire de concepts. Le datatype pilote le champ valeur utilisé par les Obs.
    """

    class Datatype(models.TextChoices):
        TEXT = "TEXT", _("Texte")
        NUMERIC = "NUMERIC", _("Numérique")
        CODED = "CODED", _("Codé")
        DATETIME = "DATETIME", _("Date/heure")
        COMPLEX = "COMPLEX", _("Complexe (binaire)")
        NA = "N/A", _("Sans valeur (groupe)")

    code = models.CharField(max_length=64, unique=True, db_index=True)
    name = models.CharField(max_length=255)
    datatype = models.CharField(max_length=16, choices=Datatype.choices, default=Datatype.TEXT)
    units = models.CharField(max_length=32, null=True, blank=True)
    retired = models.BooleanField(default=False)

    class Meta:
        verbose_name = _("Concept")
        verbose_name_plural = _("Concepts")
        indexes = [models.Index(fields=["name"])]

    @property
    def is_complex(self):
        return self.datatype == self.Datatype.COMPLEX

    def __str__(self):
        return f"{self.name} [{self.code}]"


class EncounterType(UUIDModel, TimeStampedModel):
    """
    Référentiel des types de rencontre. Pour les comptes rendus, le nom est le code de catégorie de service.
    """
    name = models.CharField(max_length=64, unique=True, db_index=True)  # LAB, DEFAULT, ...
    description = models.CharField(max_length=255, null=True, blank=True)
    retired = models.BooleanField(default=False)

    class Meta:
        verbose_name = _("Type de rencontre")
        verbose_name_plural = _("Types de rencontre")

    def __str__(self):
        return self.name


class EncounterRole(UUIDModel, TimeStampedModel):
    name = models.CharField(max_length=64, unique=True, db_index=True)
    description = models.CharField(max_length=255, null=True, blank=True)

    class Meta:
        verbose_name = _("Rôle dans la rencontre")
        verbose_name_plural = _("Rôles dans la rencontre")

    def __str__(self):
        return self.name


class OrderType(UUIDModel, TimeStampedModel):
    name = models.CharField(max_length=64, unique=True, db_index=True)  # "Test Order", ...
    description = models.CharField(max_length=255, null=True, blank=True)

    class Meta:
        verbose_name = _("Type de commande")
        verbose_name_plural = _("Types de commande")

    def __str__(self):
        return self.name


class Encounter(UUIDModel, TimeStampedModel, VoidableModel):
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="encounters")
    encounter_type = models.ForeignKey(EncounterType, on_delete=models.PROTECT, related_name="encounters")
    encounter_datetime = models.DateTimeField(db_index=True)
    providers = models.ManyToManyField(Provider, through="EncounterProvider", related_name="encounters",
                                       blank=True)

    class Meta:
        verbose_name = _("Rencontre")
        verbose_name_plural = _("Rencontres")
        indexes = [
            models.Index(fields=["patient", "encounter_datetime"]),
            models.Index(fields=["encounter_type", "voided"]),
        ]

    def __str__(self):
        return f"{self.encounter_type} {self.patient} @ {self.encounter_datetime:%Y-%m-%d %H:%M}"

    def get_obs_at_top_level(self, include_voided=False):
        qs = self.obs.filter(obs_group__isnull=True).select_related("concept", "order")
        if not include_voided:
            qs = qs.filter(voided=False)
        return set(qs)

    def get_providers_by_role(self, role):
        return set(
            Provider.objects.filter(
                encounter_links__encounter=self, encounter_links__role=role
            ).distinct()
        )

    def add_provider(self, role, provider):
        link, _ = EncounterProvider.objects.get_or_create(encounter=self, role=role, provider=provider)
        return link

    def _void_dependents(self, reason):
        # Les membres d'un groupe sont annulés par la cascade du groupe
        for obs in self.obs.filter(voided=False, obs_group__isnull=True):
            obs.void(reason)
        for obs in self.obs.filter(voided=False):
            obs.void(reason)


class EncounterProvider(UUIDModel, TimeStampedModel):
    encounter = models.ForeignKey(Encounter, on_delete=models.CASCADE, related_name="encounter_providers")
    role = models.ForeignKey(EncounterRole, on_delete=models.PROTECT, related_name="+")
    provider = models.ForeignKey(Provider, on_delete=models.PROTECT, related_name="encounter_links")

    class Meta:
        verbose_name = _("Intervenant de la rencontre")
        verbose_name_plural = _("Intervenants de la rencontre")
        unique_together = (("encounter", "role", "provider"),)


class Order(UUIDModel, TimeStampedModel):
    """
    Commande clinique (labo, imagerie...). Lecture seule pour le module FHIR.
    """
    order_number = models.CharField(max_length=64, unique=True, db_index=True)
    accession_number = models.CharField(max_length=64, null=True, blank=True, db_index=True)
    order_type = models.ForeignKey(OrderType, on_delete=models.PROTECT, related_name="orders")
    concept = models.ForeignKey(Concept, on_delete=models.PROTECT, related_name="orders")
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="orders")
    encounter = models.ForeignKey(Encounter, null=True, blank=True, on_delete=models.PROTECT,
                                  related_name="orders")
    date_activated = models.DateTimeField(db_index=True)

    class Meta:
        verbose_name = _("Commande clinique")
        verbose_name_plural = _("Commandes cliniques")
        ordering = ("date_activated", "id")

    def __str__(self):
        return f"{self.order_number} ({self.order_type})"


@dataclass
class ComplexData:
    title: str
    data: bytes
    mime_type: Optional[str] = None
    length: Optional[int] = None


class ObsQuerySet(models.QuerySet):
    def active(self):
        return self.filter(voided=False)

    def get_complex_obs(self, pk, view="RAW_VIEW"):
        """
        Relit une Obs complexe et matérialise complex_data.
        Seule la vue RAW_VIEW (octets bruts) est supportée.
        """
        if view != "RAW_VIEW":
            raise ValidationError(f"Unsupported complex obs view '{view}'.")
        obs = self.select_related("concept").get(pk=pk)
        if obs.value_complex is not None:
            payload = obs.complex_payload
            obs.complex_data = ComplexData(
                title=obs.value_complex,
                data=bytes(payload) if payload is not None else b"",
                mime_type=obs.complex_mime_type,
                length=obs.complex_length,
            )
        return obs


class Obs(UUIDModel, TimeStampedModel, VoidableModel):
    """
    Observation clinique. Un groupe (obs_group) n'a qu'un seul niveau de membres.
    complex_data n'est pas un champ : il n'est rempli que par Obs.objects.get_complex_obs().
    """
    person = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="obs")
    concept = models.ForeignKey(Concept, on_delete=models.PROTECT, related_name="obs")
    encounter = models.ForeignKey(Encounter, null=True, blank=True, on_delete=models.PROTECT,
                                  related_name="obs")
    order = models.ForeignKey(Order, null=True, blank=True, on_delete=models.SET_NULL, related_name="obs")
    obs_datetime = models.DateTimeField(db_index=True)
    obs_group = models.ForeignKey("self", null=True, blank=True, on_delete=models.PROTECT,
                                  related_name="group_members")

    value_text = models.TextField(null=True, blank=True)
    value_numeric = models.FloatField(null=True, blank=True)
    value_datetime = models.DateTimeField(null=True, blank=True)
    value_coded = models.ForeignKey(Concept, null=True, blank=True, on_delete=models.PROTECT, related_name="+")

    # Données complexes (pièces jointes) : titre + octets bruts
    value_complex = models.CharField(max_length=255, null=True, blank=True)
    complex_payload = models.BinaryField(null=True, blank=True)
    complex_mime_type = models.CharField(max_length=128, null=True, blank=True)
    complex_length = models.BigIntegerField(null=True, blank=True)

    objects = ObsQuerySet.as_manager()

    class Meta:
        verbose_name = _("Observation")
        verbose_name_plural = _("Observations")
        indexes = [
            models.Index(fields=["encounter", "voided"]),
            models.Index(fields=["order"]),
            models.Index(fields=["concept", "obs_datetime"]),
        ]

    def __init__(self, *args, complex_data=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.complex_data = complex_data

    def __str__(self):
        return f"{self.concept} = {self.value_display}"

    @property
    def is_obs_grouping(self):
        return self.pk is not None and self.group_members.exists()

    @property
    def value_display(self):
        if self.value_coded_id:
            return self.value_coded.name
        if self.value_numeric is not None:
            return f"{self.value_numeric:g}"
        if self.value_datetime is not None:
            return self.value_datetime.isoformat()
        if self.value_complex is not None:
            return self.value_complex
        return self.value_text or ""

    def get_group_members(self, include_voided=False):
        qs = self.group_members.select_related("concept", "value_coded")
        if not include_voided:
            qs = qs.filter(voided=False)
        return set(qs)

    def clean(self):
        super().clean()
        if self.obs_group_id and self.obs_group.obs_group_id:
            raise ValidationError("Obs groups only support one level of members.")
        if self.obs_group_id and self.obs_group_id == self.id:
            raise ValidationError("An obs cannot be a member of itself.")

    def save(self, *args, **kwargs):
        if self.complex_data is not None:
            self.value_complex = self.complex_data.title
            self.complex_payload = self.complex_data.data
            self.complex_mime_type = self.complex_data.mime_type
            self.complex_length = (
                self.complex_data.length if self.complex_data.length is not None else len(self.complex_data.data)
            )
        super().save(*args, **kwargs)

    def _void_dependents(self, reason):
        for member in self.group_members.filter(voided=False):
            member.void(reason)


class GlobalProperty(TimeStampedModel):
    """
    Propriété d'administration (clé/valeur). Lecture via le cache Django.
    """
    CACHE_PREFIX = "global-property:"

    name = models.CharField(max_length=255, primary_key=True)
    value = models.TextField(null=True, blank=True)
    description = models.CharField(max_length=255, null=True, blank=True)

    class Meta:
        verbose_name = _("Propriété globale")
        verbose_name_plural = _("Propriétés globales")

    def __str__(self):
        return f"{self.name}={self.value or ''}"

    @classmethod
    def cache_key(cls, name):
        return f"{cls.CACHE_PREFIX}{name}"

    @classmethod
    def get_value(cls, name, default=None):
        key = cls.cache_key(name)
        value = cache.get(key)
        if value is None:
            value = cls.objects.filter(name=name).values_list("value", flat=True).first() or ""
            timeout = getattr(settings, "FHIR_DIAGNOSTIC_REPORT", {}).get("GLOBAL_PROPERTY_CACHE_TIMEOUT", 300)
            cache.set(key, value, timeout)
        return value or default

    def save(self, *args, **kwargs):
        super().save(*args, **kwargs)
        cache.delete(self.cache_key(self.name))

    def delete(self, *args, **kwargs):
        cache.delete(self.cache_key(self.name))
        return super().delete(*args, **kwargs)
