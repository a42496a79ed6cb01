"""Owner model: identity and the ids of the snakes and cages they own."""
import datetime

import mongoengine

schema = {
    'registered_date': mongoengine.DateTimeField(default=datetime.datetime.now),
    'name': mongoengine.StringField(required=True),
    'email': {'type': str, 'required': True},
    'snake_ids': list,
    'cage_ids': list,
}
