# clinical/resources.py
from import_export import resources, fields
from import_export.widgets import Widget
from django.utils.translation import gettext_lazy as _

from .models import Concept, EncounterType, GlobalProperty


# -- Widget pour le datatype : accepte la valeur ("COMPLEX") ou le libellé ("Complexe (binaire)") --
class ConceptDatatypeWidget(Widget):

    def clean(self, value, row=None, *args, **kwargs):
        if not value:
            return Concept.Datatype.TEXT
        raw = str(value).strip()
        for choice_value, label in Concept.Datatype.choices:
            if raw.upper() == choice_value or raw.lower() == str(label).lower():
                return choice_value
        raise ValueError(_(f"Datatype inconnu: '{raw}'."))

    def render(self, value, obj=None, *args, **kwargs):
        return value or ""


# =========================
#   Resources
# =========================

class ConceptResource(resources.ModelResource):
    code = fields.Field(attribute="code", column_name="code")
    name = fields.Field(attribute="name", column_name="name")
    datatype = fields.Field(attribute="datatype", column_name="datatype", widget=ConceptDatatypeWidget())
    units = fields.Field(attribute="units", column_name="units")

    class Meta:
        model = Concept
        import_id_fields = ("code",)
        fields = ("code", "name", "datatype", "units")
        export_order = ("code", "name", "datatype", "units")
        skip_unchanged = True
        report_skipped = True


class EncounterTypeResource(resources.ModelResource):
    class Meta:
        model = EncounterType
        import_id_fields = ("name",)
        fields = ("name", "description", "retired")
        export_order = ("name", "description", "retired")
        skip_unchanged = True


class GlobalPropertyResource(resources.ModelResource):
    class Meta:
        model = GlobalProperty
        import_id_fields = ("name",)
        fields = ("name", "value", "description")
        export_order = ("name", "value", "description")
        skip_unchanged = True
