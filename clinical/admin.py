from django.contrib import admin
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _
from import_export.admin import ImportExportModelAdmin

from .models import (
    Patient, Provider, Concept, EncounterType, EncounterRole, OrderType, Encounter, EncounterProvider,
    Order, Obs, GlobalProperty
)
from .resources import ConceptResource, EncounterTypeResource, GlobalPropertyResource

admin.site.site_header = 'BACK-END DOSSIER CLINIQUE'
admin.site.site_title = 'Module FHIR Admin'
admin.site.index_title = 'Module FHIR'
admin.empty_value_display = '**Empty**'


# -------- Inlines --------
class EncounterProviderInline(admin.TabularInline):
    model = EncounterProvider
    extra = 0
    fields = ("role", "provider")
    raw_id_fields = ("provider",)


class GroupMemberInline(admin.TabularInline):
    model = Obs
    fk_name = "obs_group"
    extra = 0
    fields = ("concept", "value_text", "value_numeric", "value_coded", "voided")
    raw_id_fields = ("concept", "value_coded")
    show_change_link = True


# -------- Référentiels (import/export) --------
@admin.register(Concept)
class ConceptAdmin(ImportExportModelAdmin):
    resource_classes = [ConceptResource]
    list_display = ("code", "name", "datatype", "units", "retired")
    list_filter = ("datatype", "retired")
    search_fields = ("code", "name")


@admin.register(EncounterType)
class EncounterTypeAdmin(ImportExportModelAdmin):
    resource_classes = [EncounterTypeResource]
    list_display = ("name", "description", "retired")
    list_filter = ("retired",)
    search_fields = ("name", "description")


@admin.register(GlobalProperty)
class GlobalPropertyAdmin(ImportExportModelAdmin):
    resource_classes = [GlobalPropertyResource]
    list_display = ("name", "value", "description")
    search_fields = ("name", "value")


@admin.register(EncounterRole)
class EncounterRoleAdmin(admin.ModelAdmin):
    list_display = ("name", "description")
    search_fields = ("name",)


@admin.register(OrderType)
class OrderTypeAdmin(admin.ModelAdmin):
    list_display = ("name", "description")
    search_fields = ("name",)


# -------- Patient & intervenants --------
@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ("identifier", "family_name", "given_name", "birth_date", "sex")
    search_fields = ("identifier", "family_name", "given_name")


@admin.register(Provider)
class ProviderAdmin(admin.ModelAdmin):
    list_display = ("identifier", "name", "active")
    list_filter = ("active",)
    search_fields = ("identifier", "name")


# -------- Clinique --------
@admin.register(Encounter)
class EncounterAdmin(admin.ModelAdmin):
    list_display = ("id", "patient", "encounter_type", "encounter_datetime", "voided_badge")
    list_filter = ("encounter_type", "voided")
    search_fields = ("patient__identifier", "patient__family_name")
    raw_id_fields = ("patient",)
    readonly_fields = ("voided", "date_voided", "void_reason")
    inlines = [EncounterProviderInline]

    @admin.display(description=_("Statut"), ordering="voided")
    def voided_badge(self, obj: Encounter):
        color = "#ef4444" if obj.voided else "#10b981"
        label = _("Annulée") if obj.voided else _("Active")
        return format_html(
            '<span style="display:inline-block;padding:2px 8px;border-radius:9999px;'
            'background:rgba(0,0,0,0.04);color:{};font-weight:600;">{}</span>',
            color,
            label,
        )


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_number", "accession_number", "order_type", "concept", "patient", "date_activated")
    list_filter = ("order_type",)
    search_fields = ("order_number", "accession_number", "patient__identifier")
    raw_id_fields = ("patient", "encounter", "concept")


@admin.register(Obs)
class ObsAdmin(admin.ModelAdmin):
    list_display = ("concept", "encounter", "obs_group", "obs_datetime", "value_display", "voided")
    list_filter = ("voided", "concept__datatype")
    search_fields = ("concept__code", "concept__name", "person__identifier")
    raw_id_fields = ("person", "concept", "encounter", "order", "obs_group", "value_coded")
    exclude = ("complex_payload",)
    readonly_fields = ("voided", "date_voided", "void_reason")
    inlines = [GroupMemberInline]
    list_select_related = ("concept", "encounter", "value_coded")
