global_id = 'BookingWindow'
