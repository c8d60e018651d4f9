from models.fieldset import Fieldset
from models.field import Field
from models.location import Location
