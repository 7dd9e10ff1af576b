"""Server-side state for the four-step order creation flow.

The wizard holds one mutable *draft* item plus a *cart* of items already
committed with "Add another outfit". Everything is kept as plain documents so
the whole wizard round-trips through ``to_dict``/``from_dict`` and can be
stored on the caller's session between requests.
"""

from __future__ import annotations

import enum
from typing import Any, Dict, List, Mapping, Optional

from .errors import ValidationError
from .records import OutfitItem, PaymentMode, new_id, parse_amount, parse_enum
from .utils.validation import validate_phone

DRAFT_FIELDS = (
    'type', 'qty', 'subtype', 'measurements', 'images', 'notes', 'audioUri',
    'fabricSource', 'totalCost', 'deliveryDate', 'trialDate', 'description',
)
ORDER_FIELDS = {
    'customerId': 'customer_id',
    'customerName': 'customer_name',
    'customerMobile': 'customer_mobile',
    'trialDate': 'trial_date',
    'deliveryDate': 'delivery_date',
    'urgency': 'urgency',
    'advanceMode': 'advance_mode',
}


class WizardStep(enum.IntEnum):
    BASIC_INFO = 0
    MEASUREMENTS = 1
    MEDIA = 2
    BILLING = 3


def blank_draft() -> Dict[str, Any]:
    return {
        'id': new_id(),
        'type': 'Blouse',
        'qty': 1,
        'measurements': {},
        'images': [],
        'notes': '',
        'fabricSource': 'Customer',
        'totalCost': 0,
    }


def _cost(doc: Mapping[str, Any]) -> float:
    try:
        return float(doc.get('totalCost') or 0)
    except (TypeError, ValueError):
        return 0.0


def is_dirty(doc: Mapping[str, Any]) -> bool:
    """A draft is worth keeping once it carries a cost or any captured detail."""
    if _cost(doc) > 0:
        return True
    if doc.get('images'):
        return True
    if any(str(value).strip() for value in (doc.get('measurements') or {}).values()):
        return True
    return bool((doc.get('notes') or '').strip() or doc.get('audioUri'))


class OrderWizard:

    def __init__(self, customer_id: Optional[str] = None, customer_name: str = '',
                 customer_mobile: str = '', trial_date: Optional[str] = None,
                 delivery_date: Optional[str] = None, urgency: str = 'Normal',
                 cart: Optional[List[dict]] = None, draft: Optional[dict] = None,
                 advance: float = 0.0, advance_mode: str = PaymentMode.CASH.value,
                 step: int = WizardStep.BASIC_INFO, furthest_step: int = WizardStep.BASIC_INFO):
        self.customer_id = customer_id
        self.customer_name = customer_name or ''
        self.customer_mobile = customer_mobile or ''
        self.trial_date = trial_date
        self.delivery_date = delivery_date
        self.urgency = urgency or 'Normal'
        self.cart = [dict(item) for item in (cart or [])]
        self.draft = dict(draft) if draft else blank_draft()
        self.advance = advance
        self.advance_mode = advance_mode
        self.step = WizardStep(step)
        self.furthest_step = WizardStep(max(step, furthest_step))

    # -- field updates -------------------------------------------------

    def update(self, data: Mapping[str, Any]) -> None:
        for key, attr in ORDER_FIELDS.items():
            if key in data:
                setattr(self, attr, data[key])
        if 'advanceMode' in data:
            self.advance_mode = parse_enum(PaymentMode, data['advanceMode'], 'advance mode',
                                           default=PaymentMode.CASH).value
        if 'advance' in data:
            advance = parse_amount(data['advance'], 'advance')
            if advance < 0:
                raise ValidationError('Advance cannot be negative.')
            self.advance = advance
        if 'draft' in data:
            self.update_draft(data['draft'] or {})

    def update_draft(self, data: Mapping[str, Any]) -> None:
        for key in DRAFT_FIELDS:
            if key in data:
                self.draft[key] = data[key]
        if 'totalCost' in data:
            self.draft['totalCost'] = parse_amount(data['totalCost'], 'totalCost')
        if 'quantity' in data and 'qty' not in data:
            self.draft['qty'] = data['quantity']

    # -- navigation ----------------------------------------------------

    def validate_step(self, step: WizardStep) -> None:
        if step is WizardStep.BASIC_INFO:
            if not self.customer_id and not self.customer_name:
                raise ValidationError('Please select a customer.')
            if not self.draft.get('type'):
                raise ValidationError('Please select an outfit type.')

    def next(self) -> WizardStep:
        self.validate_step(self.step)
        if self.step < WizardStep.BILLING:
            self.step = WizardStep(self.step + 1)
            self.furthest_step = max(self.furthest_step, self.step)
        return self.step

    def back(self) -> WizardStep:
        if self.step > WizardStep.BASIC_INFO:
            self.step = WizardStep(self.step - 1)
        return self.step

    def go_to(self, step: int) -> WizardStep:
        try:
            target = WizardStep(step)
        except ValueError:
            raise ValidationError(f'Unknown step {step}.')
        if target > self.furthest_step:
            raise ValidationError('Complete the current step first.')
        self.step = target
        return self.step

    # -- cart ----------------------------------------------------------

    def _cart_index(self, index: int) -> int:
        if not isinstance(index, int) or index < 0 or index >= len(self.cart):
            raise ValidationError('Cart item not found.')
        return index

    def add_another(self) -> None:
        if not self.draft.get('type'):
            raise ValidationError('Please select an outfit type.')
        self.cart.append({**self.draft, 'id': new_id()})
        self.draft = blank_draft()
        self.step = WizardStep.BASIC_INFO

    def edit_cart_item(self, index: int) -> None:
        """Load a cart item back into the draft slot.

        A dirty draft is parked at the end of the cart first; a clean one is
        dropped. Cart positions shift as a result.
        """
        target = self.cart.pop(self._cart_index(index))
        if is_dirty(self.draft):
            self.cart.append(self.draft)
        self.draft = target
        self.step = WizardStep.BASIC_INFO

    def delete_cart_item(self, index: int) -> dict:
        return self.cart.pop(self._cart_index(index))

    def set_item_cost(self, index: int, cost: Any) -> None:
        index = self._cart_index(index)
        value = parse_amount(cost, 'cost')
        if value < 0:
            raise ValidationError('Cost cannot be negative.')
        self.cart[index] = {**self.cart[index], 'totalCost': value}

    # -- money ---------------------------------------------------------

    def items(self) -> List[dict]:
        return [*self.cart, self.draft]

    def total(self) -> float:
        return round(sum(_cost(item) for item in self.items()), 2)

    def balance_preview(self) -> float:
        return round(self.total() - (self.advance or 0), 2)

    def build_order(self) -> Dict[str, Any]:
        """Validate the whole wizard and return the payload ``create_order`` takes."""
        if not (self.customer_name or '').strip():
            raise ValidationError('Please select a customer.')
        if not validate_phone(self.customer_mobile):
            raise ValidationError('Please enter a valid 10-digit mobile number.')

        items = [OutfitItem.from_document(doc).to_document() for doc in self.items()]
        total = self.total()
        if total <= 0:
            raise ValidationError('Total order value cannot be zero.')

        return {
            'customerId': self.customer_id,
            'customerName': self.customer_name.strip(),
            'customerMobile': self.customer_mobile,
            'items': items,
            'advance': self.advance or 0,
            'advanceMode': self.advance_mode,
            'notes': self.draft.get('notes') or '',
            'deliveryDate': self.delivery_date,
            'trialDate': self.trial_date,
            'urgency': self.urgency,
        }

    # -- persistence ---------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            'customerId': self.customer_id,
            'customerName': self.customer_name,
            'customerMobile': self.customer_mobile,
            'trialDate': self.trial_date,
            'deliveryDate': self.delivery_date,
            'urgency': self.urgency,
            'cart': [dict(item) for item in self.cart],
            'draft': dict(self.draft),
            'advance': self.advance,
            'advanceMode': self.advance_mode,
            'step': int(self.step),
            'furthestStep': int(self.furthest_step),
            'total': self.total(),
            'balance': self.balance_preview(),
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'OrderWizard':
        data = data or {}
        return cls(
            customer_id=data.get('customerId'),
            customer_name=data.get('customerName') or '',
            customer_mobile=data.get('customerMobile') or '',
            trial_date=data.get('trialDate'),
            delivery_date=data.get('deliveryDate'),
            urgency=data.get('urgency') or 'Normal',
            cart=data.get('cart') or [],
            draft=data.get('draft'),
            advance=data.get('advance') or 0.0,
            advance_mode=data.get('advanceMode') or PaymentMode.CASH.value,
            step=int(data.get('step') or 0),
            furthest_step=int(data.get('furthestStep') or 0),
        )
