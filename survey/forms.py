"""Forms used by the survey application.

The forms cover sign-in, seller signup, the password reset flow, one step of
the survey wizard and the business assessment.  They only clean and reshape
input; the business rules (checklists, locks, duplicate accounts) are
enforced by ``survey.services`` so the JSON endpoints share them.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from django import forms

from .services.assessment import SOLUTIONS


def _text_input(placeholder: str = '') -> forms.TextInput:
    return forms.TextInput(attrs={'class': 'form-control', 'placeholder': placeholder})


def _number_input(step: str = 'any') -> forms.NumberInput:
    return forms.NumberInput(attrs={'class': 'form-control', 'step': step, 'min': '0'})


class LoginForm(forms.Form):
    """Simple login form requesting email and password."""

    email = forms.EmailField(label='Email', widget=forms.EmailInput(attrs={
        'class': 'form-control',
        'placeholder': 'you@example.com',
    }))
    password = forms.CharField(label='Password', widget=forms.PasswordInput(attrs={
        'class': 'form-control',
        'placeholder': '••••••••',
    }))


class SignupForm(forms.Form):
    """Collects the data needed to create a seller account."""

    name = forms.CharField(label='Name', max_length=150, required=False, widget=_text_input('Your name'))
    email = forms.EmailField(label='Email', widget=forms.EmailInput(attrs={
        'class': 'form-control',
        'placeholder': 'you@example.com',
    }))
    password = forms.CharField(label='Password', min_length=8, widget=forms.PasswordInput(attrs={
        'class': 'form-control',
        'placeholder': '••••••••',
    }))
    confirm_password = forms.CharField(label='Confirm Password', widget=forms.PasswordInput(attrs={
        'class': 'form-control',
        'placeholder': '••••••••',
    }))

    def clean(self) -> Dict[str, Any]:
        cleaned_data = super().clean()
        password = cleaned_data.get('password')
        confirm = cleaned_data.get('confirm_password')
        if password and confirm and password != confirm:
            self.add_error('confirm_password', 'Passwords do not match.')
        return cleaned_data


class ForgotPasswordForm(forms.Form):
    email = forms.EmailField(label='Email', widget=forms.EmailInput(attrs={
        'class': 'form-control',
        'placeholder': 'you@example.com',
    }))


class ResetPasswordForm(forms.Form):
    token = forms.CharField(widget=forms.HiddenInput())
    password = forms.CharField(label='New Password', min_length=8, widget=forms.PasswordInput(attrs={
        'class': 'form-control',
        'placeholder': '••••••••',
    }))
    confirm_password = forms.CharField(label='Confirm Password', widget=forms.PasswordInput(attrs={
        'class': 'form-control',
        'placeholder': '••••••••',
    }))

    def clean(self) -> Dict[str, Any]:
        cleaned_data = super().clean()
        password = cleaned_data.get('password')
        confirm = cleaned_data.get('confirm_password')
        if password and confirm and password != confirm:
            self.add_error('confirm_password', 'Passwords do not match.')
        return cleaned_data


class StepAnswersForm(forms.Form):
    """One radio group per question of a wizard step.

    ``step_data`` is the payload returned by
    ``survey.services.wizard.get_step_with_questions``; field names are the
    question keys and the previously selected values become the initial data.
    """

    def __init__(self, step_data: Mapping[str, Any], *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.step_data = step_data
        for question in step_data.get('questions', []):
            self.fields[question['key']] = forms.ChoiceField(
                label=question['label'],
                choices=[(option['value'], option['label']) for option in question['options']],
                widget=forms.RadioSelect,
                initial=question.get('selected'),
            )

    def answers(self) -> List[Dict[str, str]]:
        return [
            {'questionKey': key, 'optionValue': value}
            for key, value in self.cleaned_data.items()
        ]


# Form field name -> (section, key) inside the assessment document.
NESTED_FIELDS = {
    'venda_sul': ('vendaPorRegiao', 'sul'),
    'venda_sudeste': ('vendaPorRegiao', 'sudeste'),
    'venda_norte': ('vendaPorRegiao', 'norte'),
    'venda_nordeste': ('vendaPorRegiao', 'nordeste'),
    'venda_centro_oeste': ('vendaPorRegiao', 'centroOeste'),
    'modelo_compra_e_venda': ('modeloFiscal', 'compraEVenda'),
    'modelo_filial': ('modeloFiscal', 'filial'),
    'modelo_remessa_armazem_geral': ('modeloFiscal', 'remessaArmazemGeral'),
    'dimensao_c': ('dimensoesCm', 'c'),
    'dimensao_l': ('dimensoesCm', 'l'),
    'dimensao_a': ('dimensoesCm', 'a'),
}

FLAT_FIELDS = (
    'solution',
    'volumeMensalPedidos',
    'itensPorPedido',
    'skus',
    'ticketMedio',
    'canais',
    'gmvFlagshipMensal',
    'gmvMarketplacesMensal',
    'mesesCoberturaEstoque',
    'perfilProduto',
    'pesoMedioKg',
    'reversaPercent',
    'projetosEspeciais',
    'comentarios',
)


class AssessmentForm(forms.Form):
    """HTML rendition of the business assessment.

    Every field is optional here so drafts can be saved half filled; the
    submit checklist in ``survey.services.assessment`` decides completeness.
    """

    solution = forms.ChoiceField(
        label='Solution',
        required=False,
        choices=[('', '---------')] + [(value, value.replace('_', ' ').title()) for value in SOLUTIONS],
        widget=forms.Select(attrs={'class': 'form-control'}),
    )
    venda_sul = forms.FloatField(label='Sales: South', required=False, min_value=0, widget=_number_input())
    venda_sudeste = forms.FloatField(label='Sales: Southeast', required=False, min_value=0, widget=_number_input())
    venda_norte = forms.FloatField(label='Sales: North', required=False, min_value=0, widget=_number_input())
    venda_nordeste = forms.FloatField(label='Sales: Northeast', required=False, min_value=0, widget=_number_input())
    venda_centro_oeste = forms.FloatField(label='Sales: Center-West', required=False, min_value=0, widget=_number_input())
    modelo_compra_e_venda = forms.BooleanField(label='Purchase and sale', required=False)
    modelo_filial = forms.BooleanField(label='Branch', required=False)
    modelo_remessa_armazem_geral = forms.BooleanField(label='General warehouse shipment', required=False)
    volumeMensalPedidos = forms.IntegerField(label='Monthly order volume', required=False, min_value=0, widget=_number_input('1'))
    itensPorPedido = forms.FloatField(label='Average items per order', required=False, min_value=0, widget=_number_input())
    skus = forms.IntegerField(label='Number of SKUs', required=False, min_value=0, widget=_number_input('1'))
    ticketMedio = forms.FloatField(label='Average ticket (R$)', required=False, min_value=0, widget=_number_input())
    canais = forms.CharField(label='Sales channels', required=False, widget=_text_input())
    gmvFlagshipMensal = forms.FloatField(label='Monthly flagship GMV (R$)', required=False, min_value=0, widget=_number_input())
    gmvMarketplacesMensal = forms.FloatField(label='Monthly marketplaces GMV (R$)', required=False, min_value=0, widget=_number_input())
    mesesCoberturaEstoque = forms.FloatField(label='Months of stock coverage', required=False, min_value=0, widget=_number_input())
    perfilProduto = forms.CharField(label='Product profile', required=False, widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 3}))
    pesoMedioKg = forms.FloatField(label='Average weight (kg)', required=False, min_value=0, widget=_number_input())
    dimensao_c = forms.FloatField(label='Length (cm)', required=False, min_value=0, widget=_number_input())
    dimensao_l = forms.FloatField(label='Width (cm)', required=False, min_value=0, widget=_number_input())
    dimensao_a = forms.FloatField(label='Height (cm)', required=False, min_value=0, widget=_number_input())
    reversaPercent = forms.FloatField(label='Reverse logistics (%)', required=False, min_value=0, max_value=100, widget=_number_input())
    projetosEspeciais = forms.CharField(label='Special projects', required=False, widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 3}))
    comentarios = forms.CharField(label='Comments', required=False, widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 3}))

    @classmethod
    def initial_from_data(cls, data: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """Flatten a stored assessment document into form initial values."""

        if not isinstance(data, Mapping):
            return {}
        initial: Dict[str, Any] = {}
        for name in FLAT_FIELDS:
            if data.get(name) is not None:
                initial[name] = data[name]
        for name, (section, key) in NESTED_FIELDS.items():
            values = data.get(section)
            if isinstance(values, Mapping) and values.get(key) is not None:
                initial[name] = values[key]
        return initial

    def to_document(self) -> Dict[str, Any]:
        """Build the assessment JSON document from the cleaned data.

        Empty inputs are left out of the document; the fiscal model flags
        are always present.
        """

        document: Dict[str, Any] = {}
        for name in FLAT_FIELDS:
            value = self.cleaned_data.get(name)
            if value not in (None, ''):
                document[name] = value
        for name, (section, key) in NESTED_FIELDS.items():
            value = self.cleaned_data.get(name)
            if section == 'modeloFiscal':
                document.setdefault(section, {})[key] = bool(value)
            elif value is not None:
                document.setdefault(section, {})[key] = value
        return document
