"""Value objects shared by cart lines and order line snapshots."""

from protean.fields import Dict, Float, Integer, List, String

from ordering.domain import ordering


@ordering.value_object
class Customization:
    """Personalisation applied to a line: a design and/or printed text.

    A line carrying a design is one-off and never merged with other lines.
    """

    design: String(max_length=1000)
    text: String(max_length=200)
    position_x: Float()
    position_y: Float()
    font: String(max_length=100)
    text_color: String(max_length=20)
    elements: List(Dict())
    canvas_width: Integer(min_value=0)
    canvas_height: Integer(min_value=0)
    preview: String(max_length=1000)


@ordering.value_object
class CustomProduct:
    """A made-to-order product that has no catalogue record."""

    product_type: String(required=True, max_length=50)
    name: String(required=True, max_length=255)
    base_price: Float(required=True, min_value=0.0)
    design: String(max_length=1000)
